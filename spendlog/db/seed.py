"""Demo ledger served by the local store when no document has been saved yet."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from spendlog.models.ledger import Ledger, default_categories


def demo_ledger(today: Optional[date] = None) -> Ledger:
    today = today or date.today()
    return Ledger.from_document(
        {
            "name": "Utente Demo",
            "email": "demo@spendilog.com",
            "dataviaggio": today.isoformat(),
            "trips": [
                {
                    "id": "mock-trip-1",
                    "name": "Sud-est Asiatico",
                    "startDate": "2024-08-01",
                    "endDate": "2024-08-30",
                    "totalBudget": 3000,
                    "countries": ["Thailandia", "Vietnam", "Cambogia"],
                    "preferredCurrencies": ["EUR", "THB", "VND"],
                    "mainCurrency": "EUR",
                    "expenses": [
                        {"id": "exp1", "amount": 15, "currency": "EUR", "category": "Cibo", "date": (today - timedelta(days=2)).isoformat()},
                        {"id": "exp2", "amount": 1200, "currency": "THB", "category": "Alloggio", "date": (today - timedelta(days=2)).isoformat()},
                        {"id": "exp3", "amount": 500000, "currency": "VND", "category": "Attività", "date": (today - timedelta(days=1)).isoformat()},
                        {"id": "exp4", "amount": 25, "currency": "EUR", "category": "Trasporti", "date": today.isoformat()},
                    ],
                    "color": "#3B82F6",
                    "enableCategoryBudgets": True,
                    "categoryBudgets": [
                        {"categoryName": "Cibo", "amount": 1000},
                        {"categoryName": "Alloggio", "amount": 1200},
                    ],
                    "frequentExpenses": [
                        {"id": "freq-1", "name": "Pranzo", "icon": "🍽️", "category": "Cibo", "amount": 10},
                        {"id": "freq-2", "name": "Grab Bike", "icon": "🛵", "category": "Trasporti", "amount": 2},
                    ],
                }
            ],
            "categories": [c.model_dump(by_alias=True) for c in default_categories()],
            "defaultTripId": "mock-trip-1",
        }
    )
