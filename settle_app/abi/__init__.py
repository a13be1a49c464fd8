"""
ABI map module.

Turns a raw per-contract interface description into typed function and
event registries.
"""
from .builder import build_abi_map, load_abi_file
from .models import (
    AbiEventDescriptor,
    AbiEventInput,
    AbiFunctionDescriptor,
    AbiMap,
    ReturnCategory,
)

__all__ = [
    "AbiEventDescriptor",
    "AbiEventInput",
    "AbiFunctionDescriptor",
    "AbiMap",
    "ReturnCategory",
    "build_abi_map",
    "load_abi_file",
]
