"""
Typed descriptors for contract functions and events.

All descriptors are immutable; an AbiMap is built once and shared
read-only by every protocol invocation.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence

from ..errors import AbiLookupError
from ..ledger.fixed_point import FixedPointCodec
from ..ledger.models import Transaction


class ReturnCategory(str, Enum):
    """How a function's return value should be interpreted."""
    NONE = "null"
    FIXED = "unfix"
    RAW = "raw"
    STRING = "string"


@dataclass(frozen=True)
class AbiFunctionDescriptor:
    """Callable contract function."""
    contract: str
    name: str                          # Canonical signature, e.g. "approve(address,uint256)"
    key: str                           # Bare function name
    label: str                         # Human-readable, e.g. "Balance Of"
    constant: bool
    inputs: tuple[str, ...]
    signature: tuple[str, ...]         # Input type tags
    returns: ReturnCategory
    return_type: Optional[str] = None  # Declared output type
    fixed: tuple[int, ...] = ()        # Positions of fixed-point inputs

    def to_transaction(self, params: Sequence[Any],
                       codec: Optional[FixedPointCodec] = None) -> Transaction:
        """
        Bind positional ``params`` into a Transaction.

        Parameters at fixed-point positions are encoded with ``codec``.
        """
        if len(params) != len(self.inputs):
            raise ValueError(
                f"{self.contract}.{self.key} takes {len(self.inputs)} params, got {len(params)}"
            )
        encoded = list(params)
        if codec is not None:
            for index in self.fixed:
                encoded[index] = codec.fix(encoded[index])
        return Transaction(
            contract=self.contract,
            method=self.key,
            signature=self.signature,
            params=tuple(encoded),
            returns=self.returns.value,
            send=not self.constant,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "constant": self.constant,
            "name": self.name,
            "label": self.label,
            "returns": self.return_type if self.returns is ReturnCategory.RAW else self.returns.value,
            "inputs": list(self.inputs),
            "signature": list(self.signature),
        }
        if self.fixed:
            data["fixed"] = list(self.fixed)
        return data


@dataclass(frozen=True)
class AbiEventInput:
    """One event field."""
    name: str
    type: str
    indexed: bool


@dataclass(frozen=True)
class AbiEventDescriptor:
    """Event emitted by a contract, keyed by its topic signature."""
    contract: str
    name: str
    canonical: str                     # e.g. "Transfer(address,address,uint256)"
    inputs: tuple[AbiEventInput, ...]
    signature: str                     # 0x-prefixed keccak-256 of ``canonical``

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract,
            "inputs": [
                {"indexed": i.indexed, "type": i.type, "name": i.name}
                for i in self.inputs
            ],
            "signature": self.signature,
        }


@dataclass(frozen=True)
class AbiMap:
    """Function registry per contract plus a flat event registry."""
    functions: Mapping[str, Mapping[str, AbiFunctionDescriptor]]
    events: Mapping[str, AbiEventDescriptor]

    @classmethod
    def freeze(cls, functions: dict[str, dict[str, AbiFunctionDescriptor]],
               events: dict[str, AbiEventDescriptor]) -> "AbiMap":
        """Wrap plain dicts in read-only views."""
        return cls(
            functions=MappingProxyType({
                contract: MappingProxyType(dict(entries))
                for contract, entries in functions.items()
            }),
            events=MappingProxyType(dict(events)),
        )

    def function(self, contract: str, key: str) -> AbiFunctionDescriptor:
        try:
            return self.functions[contract][key]
        except KeyError:
            raise AbiLookupError(
                f"Unknown function {contract}.{key}", contract=contract, name=key
            ) from None

    def event(self, name: str) -> AbiEventDescriptor:
        try:
            return self.events[name]
        except KeyError:
            raise AbiLookupError(f"Unknown event {name}", name=name) from None

    def to_dict(self) -> dict[str, Any]:
        """Plain nested-dict view, used for structural comparison."""
        return {
            "events": {name: event.to_dict() for name, event in self.events.items()},
            "functions": {
                contract: {key: fn.to_dict() for key, fn in entries.items()}
                for contract, entries in self.functions.items()
            },
        }
