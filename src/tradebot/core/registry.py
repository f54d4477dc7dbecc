"""Registry for named strategy implementations."""

from typing import Type, Dict, Any, TypeVar, Callable, List

from tradebot.core.exceptions import StrategyError


T = TypeVar('T')


class Registry:
    """Closed registry: names are fixed at import time and looked up exactly."""

    def __init__(self, name: str):
        """Initialize registry."""
        self.name = name
        self._items: Dict[str, Type[Any]] = {}

    def register(self, name: str) -> Callable[[Type[T]], Type[T]]:
        """Decorator to register an implementation under ``name``."""
        def decorator(cls: Type[T]) -> Type[T]:
            if name in self._items:
                raise StrategyError(f"{self.name}: '{name}' is already registered")
            self._items[name] = cls
            return cls
        return decorator

    def get(self, name: str) -> Type[Any]:
        """Get a registered implementation by name."""
        try:
            return self._items[name]
        except KeyError:
            raise StrategyError(
                f"'{name}' is not registered in {self.name} "
                f"(available: {', '.join(self.list())})"
            ) from None

    def create(self, name: str, *args, **kwargs) -> Any:
        """Create an instance; construction errors propagate to the caller."""
        return self.get(name)(*args, **kwargs)

    def list(self) -> List[str]:
        """List all registered names."""
        return sorted(self._items)

    def has(self, name: str) -> bool:
        """Check if a name is registered."""
        return name in self._items


strategy_registry = Registry("strategies")
