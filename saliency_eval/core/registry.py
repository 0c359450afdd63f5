"""
String-to-class registry for saliency predictors ("model") and mask datasets
("dataset"), so run configs can name them.
"""

from importlib import import_module

_REGISTRY = {"model": {}, "dataset": {}}

_ADAPTER_PACKAGES = ("saliency_eval.datasets", "saliency_eval.models")


def _kind_table(kind):
    if kind not in _REGISTRY:
        raise KeyError(f"Unsupported registry kind '{kind}', expected one of {sorted(_REGISTRY)}")
    return _REGISTRY[kind]


def register(kind, name):
    table = _kind_table(kind)

    def deco(cls):
        existing = table.get(name)
        # Re-importing the same module in a worker re-registers the same class.
        if existing is not None and existing.__qualname__ != cls.__qualname__:
            raise KeyError(f"{kind} '{name}' already registered to {existing.__qualname__}")
        table[name] = cls
        return cls

    return deco


def build(kind, name, **kwargs):
    table = _kind_table(kind)
    if name not in table:
        raise KeyError(f"{kind} '{name}' not found. Registered: {sorted(table)}")
    return table[name](**kwargs)


def list_registered(kind):
    return sorted(_kind_table(kind).keys())


def import_adapters():
    # Worker processes start without the parent's registrations.
    import pkgutil

    for pkg_name in _ADAPTER_PACKAGES:
        pkg = import_module(pkg_name)
        for _, mod_name, _ in pkgutil.iter_modules(pkg.__path__):
            import_module(f"{pkg_name}.{mod_name}")
