from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Payer = Literal["USER", "FRIEND"]
PersonalType = Literal["INCOME", "EXPENSE"]
MealType = Literal["Breakfast", "Lunch", "Dinner"]
SplitMode = Literal["equal", "manual"]
ReportFormat = Literal["pdf", "csv"]


class _Entity(BaseModel):
    # Backend payloads are camelCase; unknown fields are kept for display
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Contact(_Entity):
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    name: str
    email: Optional[str] = None
    phone: str
    balance: float = 0.0
    created_at: Optional[str] = None


class LedgerTransaction(_Entity):
    """Entry in the ledger shared with a single contact.

    A positive `amount` paid by USER increases what the contact owes;
    paid by FRIEND it decreases it.
    """

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    amount: float
    payer: Payer
    note: Optional[str] = None
    created_at: Optional[str] = None
    new_balance: Optional[float] = None


class PersonalTransaction(_Entity):
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    amount: float
    type: PersonalType
    category: str = ""
    description: str = ""
    date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PersonalSummary(_Entity):
    total_income: float = 0.0
    total_expense: float = 0.0
    net_balance: float = 0.0
    total_transactions: int = 0


class PersonalLedger(_Entity):
    transactions: List[PersonalTransaction] = Field(default_factory=list)
    summary: PersonalSummary = Field(default_factory=PersonalSummary)


class GroupTransaction(_Entity):
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    # "USER" or a contact (id string, or populated object on listings)
    payer_id: Union[str, Dict[str, Any]] = "USER"
    payer_name: Optional[str] = None
    contact_ids: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)
    contact_names: List[str] = Field(default_factory=list)
    total_amount: float
    per_person_share: Optional[float] = None
    description: str = ""
    split_mode: SplitMode = "equal"
    individual_amounts: Optional[Dict[str, float]] = None
    user_amount: Optional[float] = None
    created_at: Optional[str] = None


class MessRecord(_Entity):
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    date: str
    meal_type: MealType
    price: float
    person_count: int = 1
    created_at: Optional[str] = None


class MessMonth(_Entity):
    year: int
    month: int
    month_name: str = ""
    label: str = ""
    total_amount: float = 0.0
    total_meals: int = 0


class MessReport(_Entity):
    """Monthly or date-range mess view with server-side analytics."""

    records: List[MessRecord] = Field(default_factory=list)
    records_by_date: Dict[str, Any] = Field(default_factory=dict)
    analytics: Dict[str, Any] = Field(default_factory=dict)


class MonthlySummary(_Entity):
    year: int
    month: int
    label: str = ""
    user_paid: float = 0.0
    friend_paid: float = 0.0
    user_count: int = 0
    friend_count: int = 0
    net: float = 0.0


class BalanceBucket(_Entity):
    key: str
    label: str
    count: int = 0


class Notification(_Entity):
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    transaction_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    message: Optional[str] = None
    status: Optional[str] = None
    sent_at: Optional[str] = None
    created_at: Optional[str] = None
    transaction_details: Optional[Dict[str, Any]] = None


class ReportFile(BaseModel):
    content: bytes
    content_type: str = "application/octet-stream"
    filename: Optional[str] = None


__all__ = [
    "BalanceBucket",
    "Contact",
    "GroupTransaction",
    "LedgerTransaction",
    "MealType",
    "MessMonth",
    "MessRecord",
    "MessReport",
    "MonthlySummary",
    "Notification",
    "Payer",
    "PersonalLedger",
    "PersonalSummary",
    "PersonalTransaction",
    "PersonalType",
    "ReportFile",
    "ReportFormat",
    "SplitMode",
]
