"""
Builds an AbiMap from a raw interface description.

The description maps contract names to ordered lists of JSON-ABI style
entries. Building is pure: the same description always yields an equal
map, and a malformed entry raises AbiBuildError instead of being dropped.
"""

import json
import re
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

from eth_utils import encode_hex, keccak

from ..errors import AbiBuildError
from ..logging.config import get_logger
from .models import (
    AbiEventDescriptor,
    AbiEventInput,
    AbiFunctionDescriptor,
    AbiMap,
    ReturnCategory,
)

logger = get_logger(__name__)

FIXED_POINT_PREFIX = "fxp"
STRING_TYPES = frozenset({"string", "bytes"})
SKIPPED_ENTRY_TYPES = frozenset({"constructor", "fallback", "receive", "error"})

_NAME_PATTERN = re.compile(r"^\s*([A-Za-z_$][A-Za-z0-9_$]*)\s*(?:\((.*)\))?\s*$")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def split_types(type_list: str) -> list[str]:
    """Split a comma-separated type list, respecting tuple parentheses."""
    types, depth, current = [], 0, []
    for char in type_list:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Unbalanced parentheses in {type_list!r}")
        if char == "," and depth == 0:
            types.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses in {type_list!r}")
    tail = "".join(current).strip()
    if tail or types:
        types.append(tail)
    if any(not t for t in types):
        raise ValueError(f"Empty type in {type_list!r}")
    return types


def parse_entry_name(name: Any) -> tuple[str, Union[list[str], None]]:
    """
    Split ``name`` or ``name(type,...)`` into the bare name and declared types.

    Returns None for the types when the name carries no parameter list.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError("missing name")
    match = _NAME_PATTERN.match(name)
    if not match:
        raise ValueError(f"unparseable signature {name!r}")
    bare, type_list = match.groups()
    if type_list is None:
        return bare, None
    return bare, split_types(type_list)


def make_label(key: str) -> str:
    """Human label from a camelCase or snake_case name: balanceOf -> Balance Of."""
    words = _CAMEL_BOUNDARY.sub(r"\1 \2", key).replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def event_topic(canonical: str) -> str:
    """Topic signature of a canonical event signature."""
    return encode_hex(keccak(text=canonical))


def _entry_types(contract: str, entry: Mapping[str, Any], key: str) -> list[str]:
    types = []
    for position, param in enumerate(entry.get("inputs") or []):
        param_type = param.get("type") if isinstance(param, Mapping) else None
        if not isinstance(param_type, str) or not param_type:
            raise AbiBuildError(
                f"{contract}.{key}: input {position} has no type",
                contract=contract, entry=dict(entry),
            )
        types.append(param_type)
    return types


def _classify_return(contract: str, entry: Mapping[str, Any],
                     key: str) -> tuple[ReturnCategory, Union[str, None]]:
    outputs = entry.get("outputs") or []
    if not outputs:
        return ReturnCategory.NONE, None

    first = outputs[0]
    output_type = first.get("type") if isinstance(first, Mapping) else None
    if not isinstance(output_type, str) or not output_type:
        raise AbiBuildError(
            f"{contract}.{key}: output has no type",
            contract=contract, entry=dict(entry),
        )

    if str(first.get("name") or "").startswith(FIXED_POINT_PREFIX):
        return ReturnCategory.FIXED, output_type
    if output_type in STRING_TYPES:
        return ReturnCategory.STRING, output_type
    return ReturnCategory.RAW, output_type


def _resolve_name(contract: str, entry: Mapping[str, Any]) -> tuple[str, list[str]]:
    try:
        key, declared = parse_entry_name(entry.get("name"))
    except ValueError as exc:
        raise AbiBuildError(
            f"{contract}: {exc}", contract=contract, entry=dict(entry)
        ) from exc

    types = _entry_types(contract, entry, key)
    if declared is not None and declared != types:
        raise AbiBuildError(
            f"{contract}.{key}: signature types {declared} do not match inputs {types}",
            contract=contract, entry=dict(entry),
        )
    return key, types


def build_function(contract: str, entry: Mapping[str, Any]) -> AbiFunctionDescriptor:
    """Build the descriptor for one ``function`` entry."""
    key, types = _resolve_name(contract, entry)
    inputs = entry.get("inputs") or []
    names = tuple(str(param.get("name") or "") for param in inputs)
    returns, return_type = _classify_return(contract, entry, key)

    return AbiFunctionDescriptor(
        contract=contract,
        name=f"{key}({','.join(types)})",
        key=key,
        label=make_label(key),
        constant=bool(entry.get("constant", False)),
        inputs=names,
        signature=tuple(types),
        returns=returns,
        return_type=return_type,
        fixed=tuple(
            position for position, name in enumerate(names)
            if name.startswith(FIXED_POINT_PREFIX)
        ),
    )


def build_event(contract: str, entry: Mapping[str, Any]) -> AbiEventDescriptor:
    """Build the descriptor for one ``event`` entry."""
    key, types = _resolve_name(contract, entry)
    canonical = f"{key}({','.join(types)})"

    return AbiEventDescriptor(
        contract=contract,
        name=key,
        canonical=canonical,
        inputs=tuple(
            AbiEventInput(
                name=str(param.get("name") or ""),
                type=param_type,
                indexed=bool(param.get("indexed", False)),
            )
            for param, param_type in zip(entry.get("inputs") or [], types)
        ),
        signature=event_topic(canonical),
    )


def build_abi_map(raw: Mapping[str, Sequence[Mapping[str, Any]]]) -> AbiMap:
    """
    Build the function and event registries for every contract in ``raw``.

    Raises:
        AbiBuildError: On a malformed entry or a duplicate key.
    """
    functions: dict[str, dict[str, AbiFunctionDescriptor]] = {}
    events: dict[str, AbiEventDescriptor] = {}

    for contract, entries in raw.items():
        contract_functions = functions.setdefault(contract, {})

        for entry in entries:
            if not isinstance(entry, Mapping):
                raise AbiBuildError(f"{contract}: entry is not a mapping", contract=contract)

            entry_type = entry.get("type")
            if entry_type == "function":
                descriptor = build_function(contract, entry)
                if descriptor.key in contract_functions:
                    raise AbiBuildError(
                        f"{contract}.{descriptor.key}: duplicate function",
                        contract=contract, entry=dict(entry),
                    )
                contract_functions[descriptor.key] = descriptor
            elif entry_type == "event":
                event = build_event(contract, entry)
                if event.name in events:
                    raise AbiBuildError(
                        f"{contract}.{event.name}: duplicate event "
                        f"(already defined by {events[event.name].contract})",
                        contract=contract, entry=dict(entry),
                    )
                events[event.name] = event
            elif entry_type in SKIPPED_ENTRY_TYPES:
                continue
            else:
                raise AbiBuildError(
                    f"{contract}: unknown entry type {entry_type!r}",
                    contract=contract, entry=dict(entry),
                )

    abi_map = AbiMap.freeze(functions, events)
    logger.debug(
        "ABI map built",
        contracts=len(functions),
        functions=sum(len(entries) for entries in functions.values()),
        events=len(events),
    )
    return abi_map


def load_abi_file(path: Union[str, Path]) -> AbiMap:
    """Read a JSON interface description from ``path`` and build its map."""
    with open(path) as f:
        raw = json.load(f)
    if not isinstance(raw, Mapping):
        raise AbiBuildError(f"{path}: top level must map contract names to entries")
    return build_abi_map(raw)
