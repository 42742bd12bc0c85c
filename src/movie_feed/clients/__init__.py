from .tmdb import CatalogClient, CatalogError, MovieCatalog, catalog_client

__all__ = ["CatalogClient", "CatalogError", "MovieCatalog", "catalog_client"]
