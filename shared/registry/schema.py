"""
Registry Interface Schema
=========================

Statically declared description of the registry contract methods.

The schema is the single source of the ABI handed to web3. When an external
ABI is supplied (for example a compiler artifact), it is checked against the
declared methods once, when the binding is built.

Version: 0.1.0
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.errors import InterfaceMismatch


class StateMutability(str, Enum):
    """Solidity state mutability."""

    PURE = "pure"
    VIEW = "view"
    NONPAYABLE = "nonpayable"
    PAYABLE = "payable"

    @property
    def is_read_only(self) -> bool:
        return self in (StateMutability.PURE, StateMutability.VIEW)


class ContractMethod(BaseModel):
    """One contract method: name, argument types and return types."""

    model_config = ConfigDict(frozen=True)

    name: str
    inputs: tuple[str, ...] = ()
    input_names: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    mutability: StateMutability = StateMutability.NONPAYABLE

    @property
    def read_only(self) -> bool:
        return self.mutability.is_read_only

    def to_abi(self) -> dict[str, Any]:
        """Render as a JSON ABI entry."""
        names = self.input_names or tuple("" for _ in self.inputs)
        return {
            "type": "function",
            "name": self.name,
            "inputs": [
                {"internalType": t, "name": n, "type": t}
                for t, n in zip(self.inputs, names, strict=True)
            ],
            "outputs": [{"internalType": t, "name": "", "type": t} for t in self.outputs],
            "stateMutability": self.mutability.value,
        }

    def mismatches(self, entry: dict[str, Any]) -> list[str]:
        """List the ways an ABI entry differs from this declaration."""
        problems = []

        inputs = tuple(arg.get("type") for arg in entry.get("inputs", []))
        if inputs != self.inputs:
            problems.append(f"{self.name}: expected inputs {self.inputs}, got {inputs}")

        outputs = tuple(arg.get("type") for arg in entry.get("outputs", []))
        if outputs != self.outputs:
            problems.append(f"{self.name}: expected outputs {self.outputs}, got {outputs}")

        mutability = entry.get("stateMutability")
        if mutability is None:
            # Pre-0.5 compilers emit `constant` instead
            mutability = "view" if entry.get("constant") else "nonpayable"
        try:
            read_only = StateMutability(mutability).is_read_only
        except ValueError:
            problems.append(f"{self.name}: unknown state mutability {mutability!r}")
        else:
            if read_only != self.read_only:
                problems.append(
                    f"{self.name}: expected "
                    f"{'read-only' if self.read_only else 'state-changing'} method"
                )

        return problems


GET_HASH = ContractMethod(
    name="getHash",
    outputs=("string",),
    mutability=StateMutability.VIEW,
)

SET_HASH = ContractMethod(
    name="setHash",
    inputs=("string",),
    input_names=("_hash",),
)

ISSUE_DIPLOMA = ContractMethod(
    name="issueDiploma",
    inputs=("string", "string", "string", "string"),
    input_names=("_studentName", "_institutionName", "_degree", "_ipfsHash"),
)


class RegistryInterface(BaseModel):
    """
    The set of contract methods a registry binding relies on.

    Always includes getHash/setHash; the extended variant adds issueDiploma.
    """

    model_config = ConfigDict(frozen=True)

    methods: dict[str, ContractMethod]
    abi: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def extended(self) -> bool:
        return ISSUE_DIPLOMA.name in self.methods

    def supports(self, method_name: str) -> bool:
        return method_name in self.methods

    @staticmethod
    def required_methods(extended: bool) -> list[ContractMethod]:
        methods = [GET_HASH, SET_HASH]
        if extended:
            methods.append(ISSUE_DIPLOMA)
        return methods

    @classmethod
    def declared(cls, extended: bool = True) -> "RegistryInterface":
        """Build the interface from the declared methods alone."""
        methods = cls.required_methods(extended)
        return cls(
            methods={m.name: m for m in methods},
            abi=[m.to_abi() for m in methods],
        )

    @classmethod
    def from_abi(cls, abi: list[dict[str, Any]], extended: bool = True) -> "RegistryInterface":
        """
        Validate an external ABI against the declared methods.

        The full ABI is kept so extra contract methods stay callable.

        Raises:
            InterfaceMismatch: A required method is missing or mistyped
        """
        functions: dict[str, list[dict[str, Any]]] = {}
        for entry in abi:
            if entry.get("type", "function") == "function" and "name" in entry:
                functions.setdefault(entry["name"], []).append(entry)

        problems: list[str] = []
        for method in cls.required_methods(extended):
            candidates = functions.get(method.name)
            if not candidates:
                problems.append(f"{method.name}: missing from ABI")
                continue
            # Overloads: one matching candidate is enough
            candidate_problems = [method.mismatches(entry) for entry in candidates]
            if all(candidate_problems):
                problems.extend(candidate_problems[0])

        if problems:
            raise InterfaceMismatch(
                "Contract ABI does not satisfy the registry interface",
                problems=problems,
            )

        methods = cls.required_methods(extended)
        return cls(methods={m.name: m for m in methods}, abi=list(abi))

    @classmethod
    def load(cls, path: Path, extended: bool = True) -> "RegistryInterface":
        """
        Load and validate an ABI file.

        Accepts a bare ABI list or a compiler artifact with an `abi` key.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InterfaceMismatch(f"Cannot read ABI file: {path}", reason=str(e)) from e

        abi = data.get("abi") if isinstance(data, dict) else data
        if not isinstance(abi, list):
            raise InterfaceMismatch(f"No ABI list found in {path}")

        return cls.from_abi(abi, extended=extended)
