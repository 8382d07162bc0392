"""
Repository pattern implementation.
Services go through repositories for data access; row locks live here too.
"""
from typing import Generic, TypeVar, Optional
from django.db.models import QuerySet, Model
from core.exceptions import NotFoundError

T = TypeVar('T', bound=Model)


class BaseRepository(Generic[T]):
    """
    Common lookups for one model.
    Subclass it for model-specific queries, or use it directly for simple ones.
    """

    def __init__(self, model: type[T]):
        self.model = model

    def get_by_id(self, id: int, **filters) -> Optional[T]:
        return self.model.objects.filter(id=id, **filters).first()

    def get_or_raise(self, id: int, **filters) -> T:
        """Get a single instance by ID or raise NotFoundError"""
        instance = self.get_by_id(id, **filters)
        if instance is None:
            raise NotFoundError(resource_type=self.model.__name__, resource_id=id)
        return instance

    def get_for_update(self, id: int, **filters) -> T:
        """Lock a row for the rest of the current transaction"""
        instance = self.model.objects.select_for_update().filter(id=id, **filters).first()
        if instance is None:
            raise NotFoundError(resource_type=self.model.__name__, resource_id=id)
        return instance

    def get_all(self, **filters) -> QuerySet[T]:
        return self.model.objects.filter(**filters)

    def create(self, **kwargs) -> T:
        return self.model.objects.create(**kwargs)

    def exists(self, **filters) -> bool:
        return self.model.objects.filter(**filters).exists()
