"""
Static product knowledge: preferred venue traits, reference price bands,
transaction limits and cargo footprint per good.
"""

from .products import ProductInfo, ProductKnowledgeBase

__all__ = ["ProductInfo", "ProductKnowledgeBase"]
