from .enriched_history_source import RestEnrichedHistorySource, map_enriched_item

__all__ = ["RestEnrichedHistorySource", "map_enriched_item"]
