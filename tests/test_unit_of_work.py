from __future__ import annotations

from unittest.mock import patch

import pytest
from django.test import override_settings

from apps.core.unit_of_work import UnitOfWork, transactions_available
from apps.users.models import User


@pytest.mark.django_db
def test_atomic_unit_of_work_rolls_back_on_error():
    with override_settings(LEDGER_USE_TRANSACTIONS=True):
        assert transactions_available()
        with pytest.raises(RuntimeError):
            with UnitOfWork(label="test") as uow:
                assert uow.atomic is True
                User.objects.create_user(email="uow@example.com", password="pass1234", handle="uow", name="Uow")
                raise RuntimeError("boom")

    assert not User.objects.filter(handle="uow").exists()


@override_settings(LEDGER_USE_TRANSACTIONS=False)
def test_compensations_run_in_reverse_order_on_error():
    calls: list[str] = []
    with pytest.raises(ValueError):
        with UnitOfWork(label="test") as uow:
            assert uow.atomic is False
            uow.add_compensation(lambda: calls.append("first"))
            uow.add_compensation(lambda: calls.append("second"))
            raise ValueError("step failed")

    assert calls == ["second", "first"]


@override_settings(LEDGER_USE_TRANSACTIONS=False)
def test_compensations_skipped_on_success():
    calls: list[str] = []
    with UnitOfWork(label="test") as uow:
        uow.add_compensation(lambda: calls.append("undo"))

    assert calls == []


@override_settings(LEDGER_USE_TRANSACTIONS=False)
def test_failing_compensation_does_not_block_the_rest():
    calls: list[str] = []

    def _broken() -> None:
        raise RuntimeError("undo failed")

    with patch("apps.core.unit_of_work.logger") as mocked_logger, pytest.raises(ValueError):
        with UnitOfWork(label="test") as uow:
            uow.add_compensation(lambda: calls.append("first"))
            uow.add_compensation(_broken)
            raise ValueError("step failed")

    assert calls == ["first"]
    mocked_logger.exception.assert_called_once()


@override_settings(LEDGER_USE_TRANSACTIONS=True)
@pytest.mark.django_db
def test_compensations_ignored_when_atomic():
    calls: list[str] = []
    with pytest.raises(ValueError):
        with UnitOfWork(label="test") as uow:
            uow.add_compensation(lambda: calls.append("undo"))
            raise ValueError("rolled back instead")

    assert calls == []
