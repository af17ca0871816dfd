# state.py
from __future__ import annotations

import copy
import logging
import os
import threading
from typing import Optional

from models import Invoice, Customer, CompanyInfo, Meta, Settings, format_invoice_number
from storage import Storage

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    pass


class AppState:
    """
    In-memory invoices/customers/meta for the lifetime of the process.

    Every operation holds `lock`; mutations persist the full state before
    releasing it. If a save fails the in-memory change is kept and the
    StorageError propagates to the caller.

    Ids are allocated from the in-memory counters and only reach disk with
    the next successful save, so a crash in between reuses the id on restart.
    """

    def __init__(
        self,
        storage: Storage,
        invoices: Optional[list[Invoice]] = None,
        customers: Optional[list[Customer]] = None,
        meta: Optional[Meta] = None,
        invoice_number_width: int = 4,
    ):
        self.storage = storage
        self.invoices: list[Invoice] = list(invoices or [])
        self.customers: list[Customer] = list(customers or [])
        self.meta: Meta = meta or Meta()
        self.invoice_number_width = invoice_number_width
        self.lock = threading.RLock()

    @classmethod
    def from_storage(
        cls,
        storage: Storage,
        default_settings: Optional[Settings] = None,
        invoice_number_width: int = 4,
    ) -> "AppState":
        loaded = storage.load(default_settings)

        # Follow a stored dataDirectory once at startup.
        target = loaded.meta.settings.data_directory
        if target and os.path.abspath(target) != os.path.abspath(storage.data_dir):
            logger.info("Switching data directory %s -> %s", storage.data_dir, target)
            storage.set_data_directory(target)
            if storage.has_data():
                loaded = storage.load(default_settings)

        return cls(
            storage,
            invoices=loaded.invoices,
            customers=loaded.customers,
            meta=loaded.meta,
            invoice_number_width=invoice_number_width,
        )

    # -----------------------------
    # Helpers
    # -----------------------------
    def persist(self) -> None:
        with self.lock:
            self.storage.save(self.invoices, self.customers, self.meta)

    def next_invoice_id(self) -> int:
        with self.lock:
            if self.meta.next_id <= 0:
                self.meta.next_id = 1
            new_id = self.meta.next_id
            self.meta.next_id += 1
            return new_id

    def next_customer_id(self) -> int:
        with self.lock:
            if self.meta.next_customer_id <= 0:
                self.meta.next_customer_id = 1
            new_id = self.meta.next_customer_id
            self.meta.next_customer_id += 1
            return new_id

    def find_invoice(self, invoice_id: int) -> tuple[Optional[Invoice], int]:
        for i, inv in enumerate(self.invoices):
            if inv.id == invoice_id:
                return inv, i
        return None, -1

    def find_customer(self, customer_id: int) -> tuple[Optional[Customer], int]:
        for i, c in enumerate(self.customers):
            if c.id == customer_id:
                return c, i
        return None, -1

    # -----------------------------
    # Invoices
    # -----------------------------
    def list_invoices(self) -> list[Invoice]:
        with self.lock:
            return copy.deepcopy(self.invoices)

    def get_invoice(self, invoice_id: int) -> Invoice:
        with self.lock:
            inv, _ = self.find_invoice(invoice_id)
            if inv is None:
                raise NotFoundError("Invoice not found")
            return copy.deepcopy(inv)

    def create_invoice(self, inv: Invoice) -> Invoice:
        with self.lock:
            if inv.customer_id > 0:
                customer, _ = self.find_customer(inv.customer_id)
                inv.apply_customer(customer)

            inv.id = self.next_invoice_id()
            inv.invoice_num = format_invoice_number(inv.id, self.invoice_number_width)
            inv.calculate_totals()

            self.invoices.append(inv)
            logger.info("Created invoice %s (id=%d)", inv.invoice_num, inv.id)
            self.persist()
            return copy.deepcopy(inv)

    def delete_invoice(self, invoice_id: int) -> None:
        with self.lock:
            _, index = self.find_invoice(invoice_id)
            if index == -1:
                raise NotFoundError("Invoice not found")
            del self.invoices[index]
            logger.info("Deleted invoice id=%d", invoice_id)
            self.persist()

    def toggle_template(self, invoice_id: int, template_name: str = "") -> Invoice:
        with self.lock:
            inv, _ = self.find_invoice(invoice_id)
            if inv is None:
                raise NotFoundError("Invoice not found")
            inv.template = not inv.template
            inv.template_name = template_name if inv.template else ""
            self.persist()
            return copy.deepcopy(inv)

    # -----------------------------
    # Customers
    # -----------------------------
    def list_customers(self) -> list[Customer]:
        with self.lock:
            return copy.deepcopy(self.customers)

    def get_customer(self, customer_id: int) -> Customer:
        with self.lock:
            c, _ = self.find_customer(customer_id)
            if c is None:
                raise NotFoundError("Customer not found")
            return copy.deepcopy(c)

    def create_customer(self, customer: Customer) -> Customer:
        with self.lock:
            customer.id = self.next_customer_id()
            self.customers.append(customer)
            logger.info("Created customer id=%d", customer.id)
            self.persist()
            return copy.deepcopy(customer)

    def update_customer(self, customer_id: int, customer: Customer) -> Customer:
        # Invoices keep their client snapshot; nothing is re-synced.
        with self.lock:
            _, index = self.find_customer(customer_id)
            if index == -1:
                raise NotFoundError("Customer not found")
            customer.id = customer_id
            self.customers[index] = customer
            self.persist()
            return copy.deepcopy(customer)

    def delete_customer(self, customer_id: int) -> None:
        with self.lock:
            _, index = self.find_customer(customer_id)
            if index == -1:
                raise NotFoundError("Customer not found")
            del self.customers[index]
            logger.info("Deleted customer id=%d", customer_id)
            self.persist()

    # -----------------------------
    # Settings
    # -----------------------------
    def get_settings(self) -> Settings:
        with self.lock:
            return copy.deepcopy(self.meta.settings)

    def update_settings(self, settings: Settings) -> None:
        with self.lock:
            self.meta.settings = settings
            if settings.data_directory and settings.data_directory != self.storage.data_dir:
                # The old meta.json must point at the new directory for restarts.
                self.persist()
                logger.info(
                    "Data directory changed %s -> %s (existing files are not moved)",
                    self.storage.data_dir, settings.data_directory,
                )
                self.storage.set_data_directory(settings.data_directory)
            self.persist()


def default_settings(cfg) -> Settings:
    """Settings used until a stored record with a company name exists."""
    return Settings(
        company=CompanyInfo(
            name=cfg["COMPANY_NAME"],
            email=cfg["COMPANY_EMAIL"],
            phone=cfg["COMPANY_PHONE"],
            website=cfg["COMPANY_WEBSITE"],
            address=cfg["COMPANY_ADDRESS"],
        ),
        data_directory=cfg["DATA_DIR"],
    )
