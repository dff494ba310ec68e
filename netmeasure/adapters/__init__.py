from importlib import import_module, util

__all__ = ["available_backends", "load_adapter"]

# name -> (pip_import_name, submodule, function_name)
_BACKENDS = {
    "networkx": ("networkx", ".networkx", "to_nx"),
    "igraph": ("igraph", ".igraph", "to_igraph"),  # pip pkg is python-igraph; import is igraph
}


def _is_installed(modname: str) -> bool:
    return util.find_spec(modname) is not None


def available_backends() -> dict:
    return {name: _is_installed(mod) for name, (mod, _, _) in _BACKENDS.items()}


def load_adapter(name: str):
    """Return the export function of backend ``name`` (e.g. ``to_nx``)."""
    if name not in _BACKENDS:
        raise ValueError(f"Unknown adapter '{name}'")
    modname, submod, func = _BACKENDS[name]
    if not _is_installed(modname):
        raise ModuleNotFoundError(
            f"Optional backend '{name}' is not installed. "
            f"Install with `pip install netmeasure[{name}]`."
        )
    mod = import_module(__name__ + submod)
    return getattr(mod, func)
