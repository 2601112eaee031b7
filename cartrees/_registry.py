from typing import Any, Callable, Dict, List, TypeVar

T = TypeVar("T", bound=Callable[..., Any])


class Registry:
    """Lookup table mapping names to callables.

    Parameters
    ----------
    name : str
        Name of registry, used in error messages.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._registry: Dict[str, Any] = dict()

    @property
    def name(self) -> str:
        """Name of registry."""
        return self._name

    def keys(self) -> List[str]:
        """Return registered names.

        Returns
        -------
        List[str]
            Registered names in insertion order.
        """
        return list(self._registry.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._registry

    def __getitem__(self, key: str) -> Any:
        """Get callable registered under a name.

        Parameters
        ----------
        key : str
            Registered name.

        Returns
        -------
        Any
            Registered callable.
        """
        if key not in self._registry:
            raise KeyError(f"({key}) not found in registry ({self._name}), expected one of: {self.keys()}")

        return self._registry[key]

    def register(self, alias: str) -> Callable[[T], T]:
        """Register callable under an alias.

        Parameters
        ----------
        alias : str
            Name for callable, must be unique within the registry.

        Returns
        -------
        Callable[[T], T]
            Decorator returning the callable unchanged.
        """

        def wrapper(f: T) -> T:
            if alias in self._registry:
                raise KeyError(f"alias ({alias}) already exists in registry ({self._name})")

            self._registry[alias] = f
            return f

        return wrapper


ClassifierCriteria = Registry("ClassifierCriteria")
RegressorCriteria = Registry("RegressorCriteria")
ThresholdMethods = Registry("ThresholdMethods")
