# models.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional


# -----------------------------
# Field coercion
# -----------------------------
def _to_float(value, default=0.0) -> float:
    if value is None:
        return float(default)
    # JSON numbers only: no bools, no numeric strings, no NaN/Infinity
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value!r}")
    return float(value)


def _to_int(value, default=0) -> int:
    if value is None:
        return int(default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        raise ValueError(f"expected an integer, got {value!r}")
    return int(value)


def _to_str(value, default="") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value


def _to_bool(value, default=False) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"expected a boolean, got {value!r}")
    return value


def _obj(value, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a JSON object")
    return value


# -----------------------------
# Records
# -----------------------------
@dataclass
class Client:
    """Bill-to snapshot embedded in an invoice (not a reference to a Customer)."""
    name: str = ""
    email: str = ""
    address: str = ""
    phone: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Client":
        data = _obj(data, "client")
        return cls(
            name=_to_str(data.get("name")),
            email=_to_str(data.get("email")),
            address=_to_str(data.get("address")),
            phone=_to_str(data.get("phone")),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "email": self.email, "address": self.address, "phone": self.phone}


@dataclass
class InvoiceItem:
    description: str = ""
    quantity: int = 0
    rate: float = 0.0
    percentage: float = 0.0       # 0-100
    amount: float = 0.0           # derived, see Invoice.calculate_totals

    @classmethod
    def from_dict(cls, data: Any) -> "InvoiceItem":
        data = _obj(data, "item")
        return cls(
            description=_to_str(data.get("description")),
            quantity=_to_int(data.get("quantity")),
            rate=_to_float(data.get("rate")),
            percentage=_to_float(data.get("percentage")),
            amount=_to_float(data.get("amount")),
        )

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "rate": self.rate,
            "percentage": self.percentage,
            "amount": self.amount,
        }

    def line_amount(self) -> float:
        """
        Percentage-based when a percentage is given, otherwise quantity-based:
            rate * percentage / 100
            rate * quantity
        """
        if self.percentage:
            return (self.rate or 0.0) * (self.percentage / 100)
        return (self.rate or 0.0) * (self.quantity or 0)


@dataclass
class Invoice:
    id: int = 0
    invoice_num: str = ""
    date: str = ""
    due_date: str = ""
    client: Client = field(default_factory=Client)
    customer_id: int = 0              # only used at creation to fill `client`
    items: list[InvoiceItem] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0                  # absolute amount, not a rate
    total: float = 0.0
    notes: str = ""
    template: bool = False
    template_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Invoice":
        data = _obj(data, "invoice")
        items = data.get("items")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ValueError("items must be a JSON array")
        return cls(
            id=_to_int(data.get("id")),
            invoice_num=_to_str(data.get("invoiceNum")),
            date=_to_str(data.get("date")),
            due_date=_to_str(data.get("dueDate")),
            client=Client.from_dict(data.get("client")),
            customer_id=_to_int(data.get("customerId")),
            items=[InvoiceItem.from_dict(it) for it in items],
            subtotal=_to_float(data.get("subtotal")),
            tax=_to_float(data.get("tax")),
            total=_to_float(data.get("total")),
            notes=_to_str(data.get("notes")),
            template=_to_bool(data.get("template")),
            template_name=_to_str(data.get("templateName")),
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "invoiceNum": self.invoice_num,
            "date": self.date,
            "dueDate": self.due_date,
            "client": self.client.to_dict(),
            "items": [it.to_dict() for it in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "notes": self.notes,
            "template": self.template,
        }
        if self.customer_id:
            out["customerId"] = self.customer_id
        if self.template_name:
            out["templateName"] = self.template_name
        return out

    # Derived totals (always recomputed, never trusted from input)
    def calculate_totals(self) -> None:
        self.subtotal = 0.0
        for it in self.items:
            it.amount = it.line_amount()
            self.subtotal += it.amount
        self.total = self.subtotal + (self.tax or 0.0)

    def apply_customer(self, customer: Optional["Customer"]) -> None:
        if customer is None:
            return
        self.client = Client(
            name=customer.name,
            email=customer.email,
            address=customer.address,
            phone=customer.phone,
        )


@dataclass
class Customer:
    id: int = 0
    name: str = ""
    email: str = ""
    address: str = ""
    phone: str = ""
    company: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Customer":
        data = _obj(data, "customer")
        return cls(
            id=_to_int(data.get("id")),
            name=_to_str(data.get("name")),
            email=_to_str(data.get("email")),
            address=_to_str(data.get("address")),
            phone=_to_str(data.get("phone")),
            company=_to_str(data.get("company")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "phone": self.phone,
            "company": self.company,
        }


@dataclass
class CompanyInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    address: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "CompanyInfo":
        data = _obj(data, "company")
        return cls(
            name=_to_str(data.get("name")),
            email=_to_str(data.get("email")),
            phone=_to_str(data.get("phone")),
            website=_to_str(data.get("website")),
            address=_to_str(data.get("address")),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "website": self.website,
            "address": self.address,
        }


@dataclass
class Settings:
    company: CompanyInfo = field(default_factory=CompanyInfo)
    data_directory: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Settings":
        data = _obj(data, "settings")
        return cls(
            company=CompanyInfo.from_dict(data.get("company")),
            data_directory=_to_str(data.get("dataDirectory")),
        )

    def to_dict(self) -> dict:
        return {"company": self.company.to_dict(), "dataDirectory": self.data_directory}


@dataclass
class Meta:
    """
    Persisted next-id counters, with the settings record nested inside.
    Stored as meta.json next to the two collections.
    """
    next_id: int = 1
    next_customer_id: int = 1
    settings: Settings = field(default_factory=Settings)

    @classmethod
    def from_dict(cls, data: Any) -> "Meta":
        data = _obj(data, "meta")
        return cls(
            next_id=_to_int(data.get("nextID")),
            next_customer_id=_to_int(data.get("nextCustomerID")),
            settings=Settings.from_dict(data.get("settings")),
        )

    def to_dict(self) -> dict:
        return {
            "nextID": self.next_id,
            "nextCustomerID": self.next_customer_id,
            "settings": self.settings.to_dict(),
        }


def format_invoice_number(invoice_id: int, width: int = 4) -> str:
    """Returns the display number like INV-0001."""
    return f"INV-{invoice_id:0{width}d}"
