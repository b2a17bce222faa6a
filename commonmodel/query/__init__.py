from .composer import ComposedQuery, QueryComposer, extract

__all__ = ["ComposedQuery", "QueryComposer", "extract"]
