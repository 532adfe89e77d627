"""jsonvet - composable validators for JSON-like data."""

from jsonvet.config import Config, CreateMode, load_config
from jsonvet.errors import (
    CombinedError,
    ConfigureError,
    ErrorDetail,
    ErrorKind,
    FaultyValueError,
    JsonVetError,
    ModelFrozenError,
    NotConfiguredError,
    RequiredPropertyError,
    UnknownError,
    faulty_value_result,
    required_property_result,
    unknown_error_result,
)
from jsonvet.factory import Factory, RootFactory
from jsonvet.models import Node
from jsonvet.result import Result

__version__ = "0.1.0"

__all__ = [
    "CombinedError",
    "Config",
    "ConfigureError",
    "CreateMode",
    "ErrorDetail",
    "ErrorKind",
    "Factory",
    "FaultyValueError",
    "JsonVetError",
    "ModelFrozenError",
    "Node",
    "NotConfiguredError",
    "RequiredPropertyError",
    "Result",
    "RootFactory",
    "UnknownError",
    "__version__",
    "faulty_value_result",
    "load_config",
    "required_property_result",
    "unknown_error_result",
]
