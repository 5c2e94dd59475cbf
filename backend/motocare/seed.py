# Overview: Demo workshop data used when a collection has never been stored.

from __future__ import annotations

import bcrypt

DEMO_PASSWORD = "password123"


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def demo_work_orders() -> list[dict]:
    return [
        {
            "id": "S001",
            "creationDate": "2024-07-30",
            "customerName": "Nguyễn Văn A",
            "customerPhone": "0901234567",
            "vehicleModel": "Honda Air Blade",
            "licensePlate": "59-A1 123.45",
            "issueDescription": "Bảo dưỡng định kỳ, thay nhớt",
            "technicianName": "Trần Văn An",
            "status": "Trả máy",
            "total": 580000,
            "branchId": "main",
            "laborCost": 130000,
            "processingType": "Sửa trực tiếp",
            "customerQuote": 580000,
            "partsUsed": [
                {"partId": "P002", "partName": "Nhớt Motul 300V", "sku": "MOTUL-300V-1L", "quantity": 1, "price": 450000},
            ],
            "notes": "Khách yêu cầu kiểm tra thêm hệ thống điện và sạc.",
        },
        {
            "id": "S002",
            "creationDate": "2024-07-29",
            "customerName": "Trần Thị B",
            "customerPhone": "0987654321",
            "vehicleModel": "Yamaha Exciter",
            "licensePlate": "72-B2 678.90",
            "issueDescription": "Phanh sau không ăn, có tiếng kêu",
            "technicianName": "Lê Minh Bảo",
            "status": "Đang sửa",
            "total": 120000,
            "branchId": "main",
            "laborCost": 0,
            "processingType": "Sửa trực tiếp",
            "customerQuote": 370000,
            "partsUsed": [
                {"partId": "P004", "partName": "Má phanh Bendix", "sku": "BENDIX-MD27", "quantity": 1, "price": 120000},
            ],
            "notes": "Cần thay má phanh gấp.",
        },
    ]


def demo_parts() -> list[dict]:
    return [
        {"id": "P001", "name": "Bugi NGK Iridium", "sku": "NGK-CPR8EAIX-9", "stock": {"main": 10, "q2": 5},
         "price": 80000, "sellingPrice": 110000, "warrantyPeriod": "6 tháng"},
        {"id": "P002", "name": "Nhớt Motul 300V", "sku": "MOTUL-300V-1L", "stock": {"main": 5, "q2": 3},
         "price": 450000, "sellingPrice": 520000},
        {"id": "P003", "name": "Lốp Michelin City Grip 2", "sku": "MCH-CG2-909014", "stock": {"main": 4, "q2": 0},
         "price": 950000, "sellingPrice": 1100000, "warrantyPeriod": "12 tháng"},
        {"id": "P004", "name": "Má phanh Bendix", "sku": "BENDIX-MD27", "stock": {"main": 15, "q2": 7},
         "price": 120000, "sellingPrice": 150000, "warrantyPeriod": "3 tháng"},
        {"id": "P005", "name": "Dung dịch súc rửa động cơ", "sku": "LIQUIMOLY-2427", "stock": {"main": 20, "q2": 10},
         "price": 150000, "sellingPrice": 180000, "expiryDate": "2024-08-25"},
        {"id": "P006", "name": "Lọc gió K&N", "sku": "KN-YA-1208", "stock": {"main": 8, "q2": 4},
         "price": 750000, "sellingPrice": 850000, "expiryDate": "2026-01-01"},
    ]


def demo_customers() -> list[dict]:
    return [
        {"id": "C001", "name": "Nguyễn Văn A", "phone": "0901234567", "vehicle": "Honda Air Blade 2022",
         "licensePlate": "59-A1 123.45", "loyaltyPoints": 150},
        {"id": "C002", "name": "Trần Thị B", "phone": "0987654321", "vehicle": "Yamaha Exciter 155",
         "licensePlate": "72-B2 678.90", "loyaltyPoints": 320},
        {"id": "C003", "name": "Lê Hoàng Long", "phone": "0912345678", "vehicle": "Honda SH 150i",
         "licensePlate": "29-C1 555.55", "loyaltyPoints": 80},
    ]


def demo_transactions() -> list[dict]:
    return [
        {"id": "T001", "type": "Nhập kho", "partId": "P002", "partName": "Nhớt Motul 300V", "quantity": 10,
         "date": "2024-07-29", "notes": "Nhập từ nhà cung cấp A", "unitPrice": 450000, "totalPrice": 4500000,
         "branchId": "main"},
        {"id": "T002", "type": "Xuất kho", "partId": "P001", "partName": "Bugi NGK Iridium", "quantity": 2,
         "date": "2024-07-28", "notes": "Sử dụng cho đơn WO002", "unitPrice": 110000, "totalPrice": 220000,
         "branchId": "main"},
        {"id": "T003", "type": "Xuất kho", "partId": "P004", "partName": "Má phanh Bendix", "quantity": 1,
         "date": "2024-07-28", "notes": "Bán lẻ cho khách vãng lai", "unitPrice": 150000, "totalPrice": 150000,
         "branchId": "main", "saleId": "SALE-123"},
        {"id": "T004", "type": "Nhập kho", "partId": "P003", "partName": "Lốp Michelin City Grip 2", "quantity": 5,
         "date": "2024-07-27", "notes": "Nhập từ nhà cung cấp B", "unitPrice": 950000, "totalPrice": 4750000,
         "branchId": "main"},
        {"id": "T005", "type": "Nhập kho", "partId": "P001", "partName": "Bugi NGK Iridium", "quantity": 20,
         "date": "2024-03-26", "notes": "Nhập hàng định kỳ", "unitPrice": 80000, "totalPrice": 1600000,
         "branchId": "q2"},
    ]


def demo_users(bcrypt_rounds: int = 12) -> list[dict]:
    password_hash = _hash(DEMO_PASSWORD, bcrypt_rounds)
    return [
        {"id": "U001", "name": "Nguyễn Xuân Nhạn", "loginPhone": "chucuahang", "passwordHash": password_hash,
         "departmentIds": ["dept_admin"], "status": "active", "email": "xuan.nhan@example.com",
         "creationDate": "2023-01-15"},
        {"id": "U002", "name": "Lê Minh Kỹ Thuật", "loginPhone": "kythuat01", "passwordHash": password_hash,
         "departmentIds": ["dept_tech"], "status": "active", "email": "minh.kt@example.com",
         "creationDate": "2023-02-20"},
        {"id": "U003", "name": "Trần Thị Bán Hàng", "loginPhone": "banhang01", "passwordHash": password_hash,
         "departmentIds": [], "status": "active", "email": "thi.bh@example.com",
         "creationDate": "2023-03-10"},
    ]


def demo_departments() -> list[dict]:
    return [
        {
            "id": "dept_tech",
            "name": "Kỹ thuật viên",
            "description": "Thợ sửa chữa",
            "permissions": {
                "service": {"level": "all", "details": {}},
                "inventory": {"level": "restricted",
                              "details": {"view": True, "add": False, "edit": False, "delete": False}},
                "sales": {"level": "none", "details": {}},
                "userManager": False,
            },
        },
        {
            "id": "dept_admin",
            "name": "Quản trị",
            "description": "Có thể xem được tất cả hoạt động của cửa hàng",
            "permissions": {
                "service": {"level": "all", "details": {}},
                "inventory": {"level": "all", "details": {}},
                "sales": {"level": "all", "details": {}},
                "userManager": True,
            },
        },
    ]


def demo_store_settings() -> dict:
    return {
        "name": "MotoCare Pro",
        "address": "123 Đường ABC, Quận 1, TP. HCM",
        "phone": "0987.654.321",
        "bankName": "Vietcombank",
        "bankAccountNumber": "1234567890",
        "bankAccountHolder": "MOTO CARE PRO",
        "branches": [
            {"id": "main", "name": "Chi nhánh Chính"},
            {"id": "q2", "name": "Chi nhánh Quận 2"},
        ],
    }


def demo_suppliers() -> list[dict]:
    return [
        {"id": "SUP001", "name": "Nguyễn Xuân Nhạn", "phone": "0915449550"},
        {"id": "SUP002", "name": "Cty TNHH TM-DV Phương Thuỷ", "phone": "0907855077"},
        {"id": "SUP003", "name": "Cty TM Song Đại Long", "phone": "0287777369"},
        {"id": "SUP004", "name": "Kho sỉ Thập Nhất Phong", "phone": "0988123456"},
    ]


def demo_payment_sources() -> list[dict]:
    return [
        {"id": "cash", "name": "Tiền mặt", "balance": 14373238, "isDefault": True},
        {"id": "bank", "name": "Tài khoản ngân hàng", "balance": 50000000},
    ]


def empty_defaults() -> dict:
    """Defaults for a shop that starts with nothing but its two branches."""
    return {
        "workOrders": list,
        "parts": list,
        "customers": list,
        "transactions": list,
        "users": list,
        "departments": list,
        "storeSettings": demo_store_settings,
        "suppliers": list,
        "paymentSources": demo_payment_sources,
        "cashTransactions": list,
        "currentBranchId": lambda: "main",
    }


def demo_defaults(bcrypt_rounds: int = 12) -> dict:
    """Default factory per stored collection name."""
    return {
        "workOrders": demo_work_orders,
        "parts": demo_parts,
        "customers": demo_customers,
        "transactions": demo_transactions,
        "users": lambda: demo_users(bcrypt_rounds),
        "departments": demo_departments,
        "storeSettings": demo_store_settings,
        "suppliers": demo_suppliers,
        "paymentSources": demo_payment_sources,
        "cashTransactions": list,
        "currentBranchId": lambda: "main",
    }
