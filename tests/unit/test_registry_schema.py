"""
Unit tests for the registry interface schema.
"""

import json
from pathlib import Path

import pytest

from shared.errors import InterfaceMismatch
from shared.registry import RegistryInterface, StateMutability
from shared.registry.schema import GET_HASH, ISSUE_DIPLOMA, SET_HASH


def base_abi() -> list[dict]:
    return [GET_HASH.to_abi(), SET_HASH.to_abi()]


class TestContractMethod:
    """Tests for ContractMethod."""

    def test_read_only(self) -> None:
        assert GET_HASH.read_only
        assert not SET_HASH.read_only
        assert StateMutability.PURE.is_read_only
        assert not StateMutability.PAYABLE.is_read_only

    def test_to_abi(self) -> None:
        entry = ISSUE_DIPLOMA.to_abi()

        assert entry["type"] == "function"
        assert entry["name"] == "issueDiploma"
        assert [arg["name"] for arg in entry["inputs"]] == [
            "_studentName",
            "_institutionName",
            "_degree",
            "_ipfsHash",
        ]
        assert entry["outputs"] == []
        assert entry["stateMutability"] == "nonpayable"

    def test_matching_entry(self) -> None:
        assert GET_HASH.mismatches(GET_HASH.to_abi()) == []

    def test_legacy_constant_flag(self) -> None:
        """Old compilers mark read-only methods with `constant`."""
        entry = {
            "type": "function",
            "name": "getHash",
            "inputs": [],
            "outputs": [{"name": "", "type": "string"}],
            "constant": True,
        }

        assert GET_HASH.mismatches(entry) == []

    def test_mistyped_entry(self) -> None:
        entry = SET_HASH.to_abi() | {"inputs": [{"name": "_hash", "type": "bytes32"}]}

        problems = SET_HASH.mismatches(entry)
        assert len(problems) == 1
        assert "bytes32" in problems[0]

    def test_wrong_mutability(self) -> None:
        entry = GET_HASH.to_abi() | {"stateMutability": "nonpayable"}

        assert GET_HASH.mismatches(entry) == ["getHash: expected read-only method"]


class TestRegistryInterface:
    """Tests for RegistryInterface."""

    def test_declared_extended(self) -> None:
        interface = RegistryInterface.declared()

        assert interface.extended
        assert interface.supports("issueDiploma")
        assert {entry["name"] for entry in interface.abi} == {
            "getHash",
            "setHash",
            "issueDiploma",
        }

    def test_declared_base(self) -> None:
        interface = RegistryInterface.declared(extended=False)

        assert not interface.extended
        assert not interface.supports("issueDiploma")
        assert len(interface.abi) == 2

    def test_from_abi_keeps_extra_entries(self) -> None:
        """Events and unrelated methods in the ABI are kept."""
        abi = base_abi() + [
            {"type": "event", "name": "HashSet", "inputs": [], "anonymous": False},
            {"type": "function", "name": "owner", "inputs": [], "outputs": [], "stateMutability": "view"},
        ]

        interface = RegistryInterface.from_abi(abi, extended=False)

        assert interface.abi == abi
        assert set(interface.methods) == {"getHash", "setHash"}

    def test_from_abi_missing_method(self) -> None:
        with pytest.raises(InterfaceMismatch) as exc_info:
            RegistryInterface.from_abi(base_abi(), extended=True)

        assert exc_info.value.details["problems"] == ["issueDiploma: missing from ABI"]

    def test_from_abi_accepts_matching_overload(self) -> None:
        overload = SET_HASH.to_abi() | {"inputs": [{"name": "_hash", "type": "bytes"}]}
        abi = [GET_HASH.to_abi(), overload, SET_HASH.to_abi()]

        interface = RegistryInterface.from_abi(abi, extended=False)

        assert interface.supports("setHash")

    def test_load_artifact(self, tmp_path: Path) -> None:
        """Compiler artifacts carry the ABI under an `abi` key."""
        path = tmp_path / "DiplomaRegistry.json"
        path.write_text(json.dumps({"contractName": "DiplomaRegistry", "abi": base_abi()}))

        interface = RegistryInterface.load(path, extended=False)

        assert interface.supports("getHash")

    def test_load_bare_list(self, tmp_path: Path) -> None:
        path = tmp_path / "abi.json"
        path.write_text(json.dumps(RegistryInterface.declared().abi))

        assert RegistryInterface.load(path).extended

    def test_load_unreadable(self, tmp_path: Path) -> None:
        with pytest.raises(InterfaceMismatch):
            RegistryInterface.load(tmp_path / "missing.json")

        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"bytecode": "0x"}))
        with pytest.raises(InterfaceMismatch):
            RegistryInterface.load(path)
