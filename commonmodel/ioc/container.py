from dependency_injector import containers, providers

from commonmodel.config import settings as app_settings
from commonmodel.db.session import EngineRegistry
from commonmodel.models.common_model import CommonModel


class Container(containers.DeclarativeContainer):
    """Dependency injection container for engines and models."""

    settings = providers.Object(app_settings)

    engine_registry = providers.Singleton(EngineRegistry, settings=settings)

    engine = providers.Callable(
        EngineRegistry.get,
        engine_registry,
        settings.provided.DEFAULT_GROUP,
    )

    common_model = providers.Factory(CommonModel, bind=engine)


container = Container()
