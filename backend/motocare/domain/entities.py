# Overview: Domain entities for parts, ledger rows, work orders and supporting records.

"""
Entity invariants (authoritative)

- Entities are frozen; every change produces a replacement via dataclasses.replace.
- to_dict() emits the persisted JSON layout (camelCase keys); from_dict() reads it
  back and tolerates missing optional keys.
- Amounts are VND integers; fractional amounts read from storage are rounded
  half-up to whole dong. Ledger dates are "YYYY-MM-DD" strings.
- Part.stock maps branch id -> quantity; a missing branch means zero.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


# Inventory transaction types
STOCK_IN = "Nhập kho"
STOCK_OUT = "Xuất kho"
TRANSACTION_TYPES = (STOCK_IN, STOCK_OUT)

# Work order status constants, in lifecycle order
WORK_ORDER_RECEIVED = "Tiếp nhận"
WORK_ORDER_IN_PROGRESS = "Đang sửa"
WORK_ORDER_REPAIRED = "Đã sửa xong"
WORK_ORDER_RETURNED = "Trả máy"
WORK_ORDER_STATUSES = (
    WORK_ORDER_RECEIVED,
    WORK_ORDER_IN_PROGRESS,
    WORK_ORDER_REPAIRED,
    WORK_ORDER_RETURNED,
)

CASH_INCOME = "income"
CASH_EXPENSE = "expense"

USER_ACTIVE = "active"
USER_INACTIVE = "inactive"

WALK_IN_CUSTOMER = "Khách vãng lai"
UNCATEGORIZED = "Chưa phân loại"


def _compact(data: dict) -> dict:
    """Drop unset optional keys so persisted rows stay as small as the originals."""
    return {k: v for k, v in data.items() if v is not None}


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def _money(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return _int(value)


@dataclass(frozen=True)
class Part:
    id: str
    name: str
    sku: str
    stock: dict[str, int] = field(default_factory=dict)
    price: int = 0
    selling_price: int = 0
    category: Optional[str] = None
    description: Optional[str] = None
    warranty_period: Optional[str] = None
    expiry_date: Optional[str] = None

    def stock_in(self, branch_id: str) -> int:
        return self.stock.get(branch_id, 0)

    def total_stock(self) -> int:
        return sum(self.stock.values())

    def with_stock_delta(self, branch_id: str, delta: int) -> "Part":
        new_stock = dict(self.stock)
        new_stock[branch_id] = new_stock.get(branch_id, 0) + delta
        return replace(self, stock=new_stock)

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "stock": dict(self.stock),
            "price": self.price,
            "sellingPrice": self.selling_price,
            "category": self.category,
            "description": self.description,
            "warrantyPeriod": self.warranty_period,
            "expiryDate": self.expiry_date,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "Part":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            sku=data.get("sku", ""),
            stock={str(k): _int(v) for k, v in (data.get("stock") or {}).items()},
            price=_int(data.get("price")),
            selling_price=_int(data.get("sellingPrice")),
            category=data.get("category"),
            description=data.get("description"),
            warranty_period=data.get("warrantyPeriod"),
            expiry_date=data.get("expiryDate"),
        )


@dataclass(frozen=True)
class InventoryTransaction:
    id: str
    type: str
    part_id: str
    part_name: str
    quantity: int
    date: str
    notes: str
    total_price: int
    branch_id: str
    unit_price: Optional[int] = None
    sale_id: Optional[str] = None
    transfer_id: Optional[str] = None
    discount: Optional[int] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    # Purchase price in effect when the row was written
    unit_cost: Optional[int] = None
    work_order_id: Optional[str] = None

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == STOCK_IN else -self.quantity

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "type": self.type,
            "partId": self.part_id,
            "partName": self.part_name,
            "quantity": self.quantity,
            "date": self.date,
            "notes": self.notes,
            "unitPrice": self.unit_price,
            "totalPrice": self.total_price,
            "branchId": self.branch_id,
            "saleId": self.sale_id,
            "transferId": self.transfer_id,
            "discount": self.discount,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "userId": self.user_id,
            "userName": self.user_name,
            "unitCost": self.unit_cost,
            "workOrderId": self.work_order_id,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryTransaction":
        quantity = _int(data.get("quantity"))
        unit_price = _money(data.get("unitPrice"))
        discount = _money(data.get("discount"))
        total_price = _int(data.get("totalPrice"))
        raw_total = data.get("totalPrice")
        fractional = isinstance(raw_total, float) and not raw_total.is_integer()
        if fractional and unit_price is not None and discount is not None:
            # Prorated rows: keep total + discount equal to the line subtotal
            total_price = unit_price * quantity - discount
        return cls(
            id=str(data["id"]),
            type=data["type"],
            part_id=str(data["partId"]),
            part_name=data.get("partName", ""),
            quantity=quantity,
            date=data.get("date", ""),
            notes=data.get("notes", ""),
            total_price=total_price,
            branch_id=data.get("branchId", ""),
            unit_price=unit_price,
            sale_id=data.get("saleId"),
            transfer_id=data.get("transferId"),
            discount=discount,
            customer_id=data.get("customerId"),
            customer_name=data.get("customerName"),
            user_id=data.get("userId"),
            user_name=data.get("userName"),
            unit_cost=_money(data.get("unitCost")),
            work_order_id=data.get("workOrderId"),
        )


@dataclass(frozen=True)
class WorkOrderPart:
    part_id: str
    part_name: str
    sku: str
    quantity: int
    # Selling price at the time of service
    price: int

    def to_dict(self) -> dict:
        return {
            "partId": self.part_id,
            "partName": self.part_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkOrderPart":
        return cls(
            part_id=str(data["partId"]),
            part_name=data.get("partName", ""),
            sku=data.get("sku", ""),
            quantity=_int(data.get("quantity")),
            price=_int(data.get("price")),
        )


@dataclass(frozen=True)
class WorkOrder:
    id: str
    creation_date: str
    customer_name: str
    customer_phone: str
    vehicle_model: str
    license_plate: str
    issue_description: str
    technician_name: str
    status: str
    total: int
    branch_id: str
    labor_cost: int = 0
    parts_used: tuple[WorkOrderPart, ...] = ()
    notes: Optional[str] = None
    processing_type: Optional[str] = None
    customer_quote: Optional[int] = None
    discount: Optional[int] = None

    def parts_total(self) -> int:
        return sum(p.price * p.quantity for p in self.parts_used)

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "creationDate": self.creation_date,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "vehicleModel": self.vehicle_model,
            "licensePlate": self.license_plate,
            "issueDescription": self.issue_description,
            "technicianName": self.technician_name,
            "status": self.status,
            "total": self.total,
            "branchId": self.branch_id,
            "laborCost": self.labor_cost,
            "partsUsed": [p.to_dict() for p in self.parts_used],
            "notes": self.notes,
            "processingType": self.processing_type,
            "customerQuote": self.customer_quote,
            "discount": self.discount,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "WorkOrder":
        return cls(
            id=str(data["id"]),
            creation_date=data.get("creationDate", ""),
            customer_name=data.get("customerName", ""),
            customer_phone=data.get("customerPhone", ""),
            vehicle_model=data.get("vehicleModel", ""),
            license_plate=data.get("licensePlate", ""),
            issue_description=data.get("issueDescription", ""),
            technician_name=data.get("technicianName", ""),
            status=data.get("status", WORK_ORDER_RECEIVED),
            total=_int(data.get("total")),
            branch_id=data.get("branchId", ""),
            labor_cost=_int(data.get("laborCost")),
            parts_used=tuple(WorkOrderPart.from_dict(p) for p in data.get("partsUsed") or ()),
            notes=data.get("notes"),
            processing_type=data.get("processingType"),
            customer_quote=data.get("customerQuote"),
            discount=data.get("discount"),
        )


@dataclass(frozen=True)
class CartItem:
    """A retail line being built or edited; never persisted on its own."""
    part_id: str
    part_name: str
    sku: str
    quantity: int
    selling_price: int
    # Available stock when the line was added
    stock: int = 0
    discount: int = 0
    warranty_period: Optional[str] = None

    @property
    def subtotal(self) -> int:
        return self.selling_price * self.quantity

    def to_dict(self) -> dict:
        return _compact({
            "partId": self.part_id,
            "partName": self.part_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "sellingPrice": self.selling_price,
            "stock": self.stock,
            "discount": self.discount,
            "warrantyPeriod": self.warranty_period,
        })


@dataclass(frozen=True)
class ReceiptItem:
    """A goods-receipt line; never persisted on its own."""
    part_id: str
    quantity: int
    purchase_price: int
    selling_price: Optional[int] = None
    part_name: Optional[str] = None
    sku: Optional[str] = None
    warranty_period: Optional[str] = None


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str
    vehicle: str = ""
    license_plate: str = ""
    loyalty_points: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "vehicle": self.vehicle,
            "licensePlate": self.license_plate,
            "loyaltyPoints": self.loyalty_points,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            phone=data.get("phone", ""),
            vehicle=data.get("vehicle", ""),
            license_plate=data.get("licensePlate", ""),
            loyalty_points=_int(data.get("loyaltyPoints")),
        )


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    phone: str
    address: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "email": self.email,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "Supplier":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            phone=data.get("phone", ""),
            address=data.get("address"),
            email=data.get("email"),
        )


@dataclass(frozen=True)
class PaymentSource:
    id: str
    name: str
    balance: int = 0
    is_default: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "balance": self.balance,
            "isDefault": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentSource":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            balance=_int(data.get("balance")),
            is_default=bool(data.get("isDefault", False)),
        )


@dataclass(frozen=True)
class CashContact:
    id: str
    name: str


@dataclass(frozen=True)
class CashTransaction:
    id: str
    type: str
    date: str
    amount: int
    contact: CashContact
    notes: str
    payment_source_id: str
    branch_id: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "date": self.date,
            "amount": self.amount,
            "contact": {"id": self.contact.id, "name": self.contact.name},
            "notes": self.notes,
            "paymentSourceId": self.payment_source_id,
            "branchId": self.branch_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CashTransaction":
        contact = data.get("contact") or {}
        return cls(
            id=str(data["id"]),
            type=data.get("type", CASH_INCOME),
            date=data.get("date", ""),
            amount=_int(data.get("amount")),
            contact=CashContact(id=str(contact.get("id", "")), name=contact.get("name", "")),
            notes=data.get("notes", ""),
            payment_source_id=data.get("paymentSourceId", ""),
            branch_id=data.get("branchId", ""),
        )


@dataclass(frozen=True)
class User:
    id: str
    name: str
    login_phone: str
    password_hash: str
    status: str = USER_ACTIVE
    department_ids: tuple[str, ...] = ()
    creation_date: str = ""
    email: Optional[str] = None
    address: Optional[str] = None

    def to_dict(self, include_secret: bool = False) -> dict:
        data = _compact({
            "id": self.id,
            "name": self.name,
            "loginPhone": self.login_phone,
            "email": self.email,
            "status": self.status,
            "departmentIds": list(self.department_ids),
            "creationDate": self.creation_date,
            "address": self.address,
        })
        if include_secret:
            data["passwordHash"] = self.password_hash
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            login_phone=data.get("loginPhone", ""),
            password_hash=data.get("passwordHash", ""),
            status=data.get("status", USER_ACTIVE),
            department_ids=tuple(data.get("departmentIds") or ()),
            creation_date=data.get("creationDate", ""),
            email=data.get("email"),
            address=data.get("address"),
        )


@dataclass(frozen=True)
class Branch:
    id: str
    name: str


@dataclass(frozen=True)
class StoreSettings:
    name: str
    address: str = ""
    phone: str = ""
    bank_name: str = ""
    bank_account_number: str = ""
    bank_account_holder: str = ""
    branches: tuple[Branch, ...] = ()

    def branch_ids(self) -> list[str]:
        return [b.id for b in self.branches]

    def branch_name(self, branch_id: str) -> Optional[str]:
        for branch in self.branches:
            if branch.id == branch_id:
                return branch.name
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "bankName": self.bank_name,
            "bankAccountNumber": self.bank_account_number,
            "bankAccountHolder": self.bank_account_holder,
            "branches": [{"id": b.id, "name": b.name} for b in self.branches],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoreSettings":
        return cls(
            name=data.get("name", ""),
            address=data.get("address", ""),
            phone=data.get("phone", ""),
            bank_name=data.get("bankName", ""),
            bank_account_number=data.get("bankAccountNumber", ""),
            bank_account_holder=data.get("bankAccountHolder", ""),
            branches=tuple(
                Branch(id=str(b["id"]), name=b.get("name", "")) for b in data.get("branches") or ()
            ),
        )
