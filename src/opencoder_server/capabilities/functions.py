"""In-process capability provider backed by plain Python functions.

Every ``*.py`` file in the tools directory becomes one provider session whose
public functions are exposed as capabilities. Parameter schemas are inferred
from function signatures and type hints.
"""

import asyncio
import functools
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Union, get_args, get_origin, get_type_hints

from opencoder_server.capabilities.types import CapabilityDescriptor
from opencoder_server.errors import CapabilityNotFound

logger = logging.getLogger(__name__)

_JSON_TYPES: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


def _json_type(type_hint: Any) -> str:
    origin = get_origin(type_hint)
    if origin is Union or (origin is not None and type(None) in get_args(type_hint)):
        # Optional[T] / T | None
        args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(args) == 1:
            return _json_type(args[0])
        return "string"
    return _JSON_TYPES.get(origin or type_hint, "string")


def function_schema(func: Callable[..., Any]) -> dict[str, Any]:
    """Infer an object schema from a function signature."""
    try:
        type_hints = get_type_hints(func)
    except Exception:
        type_hints = {}

    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, param in inspect.signature(func).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        properties[name] = {"type": _json_type(type_hints.get(name, str))}
        if param.default is inspect.Parameter.empty:
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _accepts(func: Callable[..., Any], name: str) -> bool:
    params = inspect.signature(func).parameters
    if name in params:
        return True
    return any(p.kind == p.VAR_KEYWORD for p in params.values())


class FunctionCapabilitySession:
    """Capability session exposing Python callables.

    Sync functions run in a worker thread so a slow tool does not block the
    event loop. Arguments a function does not accept, such as the injected
    user identity, are dropped before the call.
    """

    def __init__(self, name: str, functions: dict[str, Callable[..., Any]]):
        self.name = name
        self._functions = dict(functions)

    @classmethod
    def from_module(cls, name: str, module: ModuleType) -> "FunctionCapabilitySession":
        """Expose the public functions defined in a module.

        Honors ``__all__`` when the module defines it.
        """
        exported = getattr(module, "__all__", None)
        functions: dict[str, Callable[..., Any]] = {}
        for attr, obj in vars(module).items():
            if not inspect.isfunction(obj) or obj.__module__ != module.__name__:
                continue
            if exported is not None and attr not in exported:
                continue
            if exported is None and attr.startswith("_"):
                continue
            functions[attr] = obj
        return cls(name, functions)

    @classmethod
    def from_file(cls, path: Path) -> "FunctionCapabilitySession":
        """Load a Python file and expose its public functions.

        The session is named after the file stem.

        Raises:
            FileNotFoundError: If the file does not exist
            ImportError: If the file cannot be imported
        """
        path = Path(path).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Tool file not found: {path}")

        module_name = f"_opencoder_tools_.{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, str(path))
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot create module spec for {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        return cls.from_module(path.stem, module)

    async def list_capabilities(self) -> list[CapabilityDescriptor]:
        return [
            CapabilityDescriptor(
                name=name,
                description=inspect.getdoc(func) or f"Tool {name}",
                parameters=function_schema(func),
                session_name=self.name,
            )
            for name, func in self._functions.items()
        ]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        func = self._functions.get(name)
        if func is None:
            raise CapabilityNotFound(name)

        kwargs = {k: v for k, v in arguments.items() if _accepts(func, k)}
        logger.debug(f"Invoking {self.name}.{name} with {sorted(kwargs)}")

        if inspect.iscoroutinefunction(func):
            return await func(**kwargs)
        return await asyncio.to_thread(functools.partial(func, **kwargs))

    async def close(self) -> None:
        self._functions = {}


def discover_sessions(tools_dir: Path) -> list[FunctionCapabilitySession]:
    """Create one session per Python file in a directory.

    Files starting with ``_`` are skipped. A file that fails to import is
    logged and skipped, the remaining providers are still loaded.

    Args:
        tools_dir: Directory to scan

    Returns:
        list[FunctionCapabilitySession]: Sessions sorted by file name
    """
    if not tools_dir.is_dir():
        logger.warning(f"Tools directory not found: {tools_dir}")
        return []

    sessions: list[FunctionCapabilitySession] = []
    for py_file in sorted(tools_dir.glob("*.py")):
        if py_file.name.startswith("_"):
            continue
        try:
            sessions.append(FunctionCapabilitySession.from_file(py_file))
        except Exception as e:
            logger.error(f"Failed to load tool provider {py_file.name}: {e}")
            continue

    logger.info(f"Discovered {len(sessions)} tool providers in {tools_dir}")
    return sessions
