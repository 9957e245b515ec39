"""Application settings lifecycle."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from platito.exceptions import ValidationError
from platito.forex import (
    RatesProfile,
    normalize_rates,
    validate_rates,
    validate_settings_patch,
)
from platito.models import AppSettings, AutoUpdateInterval, TimeWindow, ensure_enum, ensure_key
from platito.persistence import PersistenceBackend

UPDATABLE_FIELDS = {
    "default_account_key",
    "default_time_window",
    "display_currency",
    "exchange_rates",
    "auto_update_interval",
}


class SettingsStore:
    """Load, initialize and save the single settings record."""

    def __init__(
        self,
        backend: PersistenceBackend,
        profile: RatesProfile = RatesProfile.LIVE,
    ) -> None:
        self.backend = backend
        self.profile = profile

    def defaults(self) -> AppSettings:
        """Settings used when nothing has been stored yet."""
        return AppSettings(exchange_rates=normalize_rates(None, self.profile))

    def load(self) -> AppSettings:
        """Return stored settings, creating the defaults on first use."""
        stored = self.backend.load_settings()
        if stored is None:
            settings = self.defaults()
            self.backend.save_settings(settings)
            return settings
        return replace(
            stored,
            exchange_rates=normalize_rates(stored.exchange_rates, self.profile),
        )

    def save(self, settings: AppSettings) -> AppSettings:
        """Persist settings with a normalized rate table."""
        settings = replace(
            settings,
            exchange_rates=normalize_rates(settings.exchange_rates, self.profile),
        )
        self.backend.save_settings(settings)
        return settings

    def update(self, **patch: Any) -> AppSettings:
        """Validate and apply a partial settings update.

        ``exchange_rates`` may be partial; it is merged over the current table
        and the merged table is validated.
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown settings fields: {', '.join(sorted(unknown))}")

        current = self.load()
        changes = validate_settings_patch(
            display_currency=patch.get("display_currency"),
            exchange_rates=patch.get("exchange_rates"),
        )
        if "exchange_rates" in changes:
            merged = dict(current.exchange_rates)
            merged.update(changes["exchange_rates"])
            changes["exchange_rates"] = validate_rates(merged)
        if "default_time_window" in patch:
            changes["default_time_window"] = ensure_enum(
                TimeWindow, patch["default_time_window"], "Default time window"
            )
        if "auto_update_interval" in patch:
            changes["auto_update_interval"] = ensure_enum(
                AutoUpdateInterval, patch["auto_update_interval"], "Auto update interval"
            )
        if "default_account_key" in patch:
            account_key = patch["default_account_key"]
            if account_key is not None:
                account_key = ensure_key(account_key, "Default account")
                self.backend.get_account(account_key)
            changes["default_account_key"] = account_key
        return self.save(replace(current, **changes))
