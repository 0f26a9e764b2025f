"""Servicios de aplicación: orquestan contratos del Core."""
