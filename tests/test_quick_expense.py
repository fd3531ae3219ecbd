import pytest

from spendlog.core.errors import ExternalCollaboratorError, LedgerValidationError
from spendlog.services.quick_expense import InferredExpense, create_quick_expense

from .conftest import TODAY

pytestmark = pytest.mark.asyncio


class FakeInference:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def infer(self, prompt, currencies, categories):
        self.calls.append((prompt, tuple(currencies), tuple(categories)))
        if self.error:
            raise self.error
        return self.result


async def test_quick_expense_is_added(store, notifier):
    inference = FakeInference(InferredExpense(amount=250, currency="thb", category="Cibo"))

    expense = await create_quick_expense(store, "t-a", "  pad thai 250 baht ", inference, notifier, today=TODAY)

    prompt, currencies, categories = inference.calls[0]
    assert prompt == "pad thai 250 baht"
    assert currencies == ("EUR", "THB")
    assert "Traghetti" in categories
    assert expense.currency == "THB"
    assert store.get_snapshot().get_trip("t-a").get_expense(expense.id) is not None


async def test_quick_expense_rejects_disallowed_currency(store, notifier):
    inference = FakeInference(InferredExpense(amount=10, currency="USD", category="Cibo"))
    before = store.get_snapshot()

    with pytest.raises(LedgerValidationError):
        await create_quick_expense(store, "t-a", "coffee 10 dollars", inference, notifier)

    assert store.get_snapshot() is before
    assert notifier.recent()[-1].message.startswith("Impossibile aggiungere")


async def test_quick_expense_rejects_unknown_category(store, notifier):
    inference = FakeInference(InferredExpense(amount=10, currency="EUR", category="Casinò"))
    with pytest.raises(LedgerValidationError):
        await create_quick_expense(store, "t-a", "roulette", inference, notifier)


async def test_quick_expense_empty_prompt(store, notifier):
    with pytest.raises(LedgerValidationError):
        await create_quick_expense(store, "t-a", "   ", FakeInference(), notifier)


async def test_inference_failure_is_reported(store, notifier):
    inference = FakeInference(error=ExternalCollaboratorError("quota exceeded"))
    with pytest.raises(ExternalCollaboratorError):
        await create_quick_expense(store, "t-a", "taxi", inference, notifier)
    assert notifier.recent()[-1].level == "error"
