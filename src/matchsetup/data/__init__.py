from .catalog import DEFAULT_MAP_POOL, JsonMapCatalog, MapCatalogConfig, StaticTeamDirectory

__all__ = ["DEFAULT_MAP_POOL", "JsonMapCatalog", "MapCatalogConfig", "StaticTeamDirectory"]
