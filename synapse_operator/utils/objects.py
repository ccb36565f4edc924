from typing import (
    Any,
    Callable,
    Generic,
    Optional,
    Type,
    TypeVar,
    cast,
)

RT = TypeVar("RT")


class cached_property(Generic[RT]):
    """Cached property.

    A property descriptor that computes the value once per instance and
    stores it in the instance ``__dict__``. Assigning to the attribute
    overrides the cached value, deleting it forces recomputation.

    Examples:
        .. sourcecode:: python

            @cached_property
            def config_map(self) -> Dict:
                return self.prepare_config_map()
    """

    def __init__(
        self,
        fget: Callable[[Any], RT],
        doc: str = None,
    ) -> None:
        self.__get: Callable[[Any], RT] = fget
        self.__doc__ = doc or fget.__doc__
        self.__name__ = fget.__name__
        self.__module__ = fget.__module__

    def __get__(self, obj: Any, type: Optional[Type] = None) -> RT:
        if obj is None:
            return cast(RT, self)
        try:
            return cast(RT, obj.__dict__[self.__name__])
        except KeyError:
            value = obj.__dict__[self.__name__] = self.__get(obj)
            return value

    def __set__(self, obj: Any, value: RT) -> None:
        obj.__dict__[self.__name__] = value

    def __delete__(self, obj: Any) -> None:
        obj.__dict__.pop(self.__name__, None)
