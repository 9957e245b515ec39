"""System integration tests for transfers between accounts."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from platito import NotFoundError, SameAccountError, TransferDTO


def _transfer(source, target, amount: str = "500", **kwargs) -> TransferDTO:
    return TransferDTO(
        from_account_key=source.key,
        to_account_key=target.key,
        amount=Decimal(amount),
        date=kwargs.pop("date", dt.date(2026, 3, 1)),
        **kwargs,
    )


@pytest.mark.sit
def test_cross_currency_transfer_scenario(client, peso_account, mep_account) -> None:
    client.update_exchange_rates({"USD_MEP": 1000})

    saved = client.add_transfer(_transfer(peso_account, mep_account, description="Buy MEP"))

    assert saved.converted_amount == Decimal("0.5")
    assert saved.exchange_rate == Decimal("0.001")
    assert client.get_account_balance(peso_account.key) == Decimal("500")
    assert client.get_account_balance(mep_account.key) == Decimal("0.5")
    assert client.get_total_balance() == Decimal("1000")


@pytest.mark.sit
def test_rate_changes_do_not_reprice_existing_transfers(client, peso_account, mep_account) -> None:
    client.update_exchange_rates({"USD_MEP": 1000})
    saved = client.add_transfer(_transfer(peso_account, mep_account))

    client.update_exchange_rates({"USD_MEP": 2000})

    assert client.get_transfer(saved.key).converted_amount == Decimal("0.5")
    assert client.get_account_balance(mep_account.key) == Decimal("0.5")


@pytest.mark.sit
def test_update_reprices_at_current_rates(client, clock, peso_account, mep_account) -> None:
    client.update_exchange_rates({"USD_MEP": 1000})
    saved = client.add_transfer(_transfer(peso_account, mep_account))
    client.update_exchange_rates({"USD_MEP": 2000})
    clock.advance(minutes=5)

    updated = client.update_transfer(saved.key, description="Only the note changed")

    assert updated.amount == Decimal("500")
    assert updated.converted_amount == Decimal("0.25")
    assert updated.description == "Only the note changed"
    assert updated.created_at == saved.created_at
    assert updated.updated_at != saved.updated_at
    assert client.get_account_balance(mep_account.key) == Decimal("0.25")


@pytest.mark.sit
def test_update_transfer_amount_and_direction(client, peso_account, mep_account) -> None:
    client.update_exchange_rates({"USD_MEP": 1000})
    saved = client.add_transfer(_transfer(peso_account, mep_account))

    updated = client.update_transfer(
        saved.key,
        from_account_key=mep_account.key,
        to_account_key=peso_account.key,
        amount="0.2",
    )

    assert updated.converted_amount == Decimal("200")
    assert client.get_account_balance(peso_account.key) == Decimal("1200")


@pytest.mark.sit
def test_transfer_validation(client, peso_account, mep_account) -> None:
    with pytest.raises(SameAccountError):
        client.add_transfer(
            TransferDTO(peso_account.key, peso_account.key, Decimal("1"), dt.date(2026, 3, 1))
        )
    with pytest.raises(NotFoundError):
        client.add_transfer(TransferDTO(peso_account.key, 999, Decimal("1"), dt.date(2026, 3, 1)))

    saved = client.add_transfer(_transfer(peso_account, mep_account))
    with pytest.raises(SameAccountError):
        client.update_transfer(saved.key, to_account_key=peso_account.key)
    assert client.get_transfer(saved.key) == saved


@pytest.mark.sit
def test_list_transfers_by_account_and_direction(client, peso_account, mep_account) -> None:
    outgoing = client.add_transfer(_transfer(peso_account, mep_account, date=dt.date(2026, 3, 1)))
    incoming = client.add_transfer(_transfer(mep_account, peso_account, "1", date=dt.date(2026, 3, 2)))

    assert [record.key for record in client.list_transfers()] == [incoming.key, outgoing.key]
    assert [
        record.key
        for record in client.list_transfers(account_key=peso_account.key, direction="from")
    ] == [outgoing.key]
    assert [
        record.key
        for record in client.list_transfers(account_key=peso_account.key, direction="to")
    ] == [incoming.key]
    assert client.list_transfers(start_date=dt.date(2026, 3, 2)) == [incoming]


@pytest.mark.sit
def test_delete_transfer(client, peso_account, mep_account) -> None:
    saved = client.add_transfer(_transfer(peso_account, mep_account))

    client.delete_transfer(saved.key)

    with pytest.raises(NotFoundError):
        client.get_transfer(saved.key)
    assert client.get_account_balance(peso_account.key) == Decimal("1000")
