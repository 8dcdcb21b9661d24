from crudforge.api.routers.crud import CrudResource, stock_pipeline
from crudforge.api.routers.metadata import MetadataRouter

__all__ = ["CrudResource", "MetadataRouter", "stock_pipeline"]
