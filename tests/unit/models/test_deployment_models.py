"""Unit tests for deployment option and record models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from chaindeck.models.deployment import DeployOptions, MigrationStep, ProxyKind
from chaindeck.models.deployment_state import DeploymentRecord, RecordStatus


class TestDeployOptions:
    """Tests for the closed deploy options type."""

    def test_defaults(self) -> None:
        """Nothing is skipped or proxied by default."""
        options = DeployOptions()

        assert options.no_cache is False
        assert options.no_confirm is False
        assert options.proxy_kind is None
        assert options.extra == {}

    def test_unknown_option_rejected(self) -> None:
        """Pass-through parameters belong in 'extra'."""
        with pytest.raises(ValidationError):
            DeployOptions(kind="uups")  # type: ignore[call-arg]

    def test_proxy_kind_from_string(self) -> None:
        """Proxy kinds parse from their string values."""
        assert DeployOptions(proxy_kind="transparent").proxy_kind == (
            ProxyKind.TRANSPARENT
        )


class TestMigrationStep:
    """Tests for plan steps."""

    def test_options_merge_cli_flags(self) -> None:
        """Run-wide flags switch options on but never off."""
        step = MigrationStep(
            name="vault",
            artifact=Path("Vault.json"),
            no_confirm=True,
            proxy_kind=ProxyKind.UUPS,
            extra={"initializer": "init"},
        )

        options = step.options(no_cache=True)

        assert options == DeployOptions(
            no_cache=True,
            no_confirm=True,
            proxy_kind=ProxyKind.UUPS,
            extra={"initializer": "init"},
        )

    @pytest.mark.parametrize("name", ["token.v2", "", "my token"])
    def test_invalid_names_rejected(self, name: str) -> None:
        """Names must be usable as cache keys."""
        with pytest.raises(ValidationError):
            MigrationStep(name=name, artifact=Path("Token.json"))


class TestDeploymentRecord:
    """Tests for the cached record view."""

    def test_status_absent(self) -> None:
        """An empty entry is absent."""
        assert DeploymentRecord.from_entry(None).status == RecordStatus.ABSENT
        assert DeploymentRecord.from_entry({}).status == RecordStatus.ABSENT

    def test_status_pending(self) -> None:
        """A hash without address is pending."""
        record = DeploymentRecord.from_entry({"txHash": "0xabc"})

        assert record.status == RecordStatus.PENDING
        assert record.tx_hash == "0xabc"

    def test_status_done(self) -> None:
        """An address means done, whether or not the hash is kept."""
        record = DeploymentRecord.from_entry({"txHash": "0xabc", "address": "0x1"})

        assert record.status == RecordStatus.DONE

    def test_legacy_scalar_entry_is_absent(self) -> None:
        """Entries from other cache layouts are not read as addresses."""
        assert DeploymentRecord.from_entry("0x1").status == RecordStatus.ABSENT
