"""Adaptadores concretos: PostgreSQL, Elasticsearch, embeddings, manifiesto."""
