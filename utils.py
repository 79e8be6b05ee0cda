from typing import Any, Callable

from api import APIS


def lazy_external_import(module_name: str, class_name: str) -> Callable[..., Any]:
    """Lazily import a class from an external module based on the package of the caller."""
    # Get the caller's module and package
    import inspect

    caller_frame = inspect.currentframe().f_back
    module = inspect.getmodule(caller_frame)
    package = module.__package__ if module else None

    def import_class(*args: Any, **kwargs: Any):
        import importlib

        module = importlib.import_module(module_name, package=package)
        cls = getattr(module, class_name)
        return cls(*args, **kwargs)

    return import_class


def get_api_class(api_name: str) -> Callable[..., Any]:
    # Direct imports for default api implementations
    import_path = APIS[api_name]
    api_class = lazy_external_import(import_path, api_name)
    return api_class
