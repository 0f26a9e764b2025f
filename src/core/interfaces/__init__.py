"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite invertir dependencias: el Core depende de abstracciones.
"""

from core.interfaces.search import DocumentStore, Embedder, VectorIndex

__all__ = ["DocumentStore", "Embedder", "VectorIndex"]
