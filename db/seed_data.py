"""
Seed data for the mock marketplace.

Generates demonstration users deterministically from a seed and provides
the sample promotions, products and maintenance tasks the store starts
with.
"""

import random
from datetime import date
from typing import Dict, List

from models.marketplace import (
    MaintenanceFrequency,
    MaintenanceTask,
    MaintenanceTaskType,
    MockUser,
    Product,
    PromotionPost,
    UserRole,
)

FIRST_NAMES = [
    "Aarav", "Aditya", "Akhil", "Anand", "Arjun", "Ashwin", "Balaji", "Bharath",
    "Chandra", "Deepak", "Ganesh", "Gautam", "Hari", "Karthik", "Kiran", "Krishna",
    "Madhav", "Manoj", "Naveen", "Pranav", "Rajesh", "Ravi", "Sanjay", "Saravanan",
    "Shankar", "Srinivas", "Suresh", "Venkat", "Vijay", "Vikram", "Vishnu",
    "Aishwarya", "Ananya", "Anjali", "Aparna", "Bhavana", "Deepa", "Divya",
    "Gayathri", "Harini", "Janani", "Kavitha", "Keerthi", "Lakshmi", "Lavanya",
    "Meena", "Nandini", "Padma", "Priya", "Radha", "Ramya", "Revathi", "Sandhya",
    "Shruti", "Sneha", "Sowmya", "Swathi", "Uma", "Vidya",
]

LAST_NAMES = [
    "Menon", "Nair", "Pillai", "Rao", "Reddy", "Iyer", "Iyengar", "Murthy",
    "Krishnan", "Subramanian", "Rajagopal", "Venkatesh", "Balakrishnan", "Ganesan",
    "Ramaswamy", "Chari", "Kulkarni", "Shenoy", "Bhat", "Hegde", "Naidu", "Setty",
    "Acharya", "Prakash", "Nathan", "Shetty", "Kamath", "Pai",
]

CITIES = ["Chennai", "Bangalore", "Hyderabad", "Kochi"]

EMAIL_DOMAINS = {
    UserRole.HOMEOWNER: "home.example.com",
    UserRole.INSTALLER: "install.example.com",
    UserRole.SUPPLIER: "supply.example.com",
}

INSTALLER_SPECIALTIES = (
    ["Residential Solar", "Commercial Solar", "Battery Storage"],
    ["EV Charger Installation", "Solar Maintenance"],
)

SUPPLIER_PRODUCT_LINES = (
    ["Solar Panels", "Inverters", "Batteries"],
    ["Mounting Kits", "Cables & Connectors"],
)


def generate_mock_user(role: UserRole, index: int, seed: int = 42) -> MockUser:
    """
    Generate one demonstration user.

    The same (role, index, seed) always yields the same user, so ids and
    contact details are stable across restarts.

    Args:
        role: User role
        index: 1-based index within the role
        seed: Generation seed

    Returns:
        MockUser with id `{role}-user-{index:03d}`
    """
    role = UserRole(role)
    rng = random.Random(f"{seed}:{role.value}:{index}")

    first_name = rng.choice(FIRST_NAMES)
    last_name = rng.choice(LAST_NAMES)
    member_since = date(2020 + rng.randrange(4), rng.randrange(12) + 1, rng.randrange(28) + 1)

    user = {
        "id": f"{role.value}-user-{index:03d}",
        "full_name": f"{first_name} {last_name}",
        "email": f"{first_name.lower()}.{last_name.lower()}{index}@{EMAIL_DOMAINS[role]}",
        "role": role,
        "avatar_url": f"https://placehold.co/100x100.png?text={first_name[0]}{last_name[0]}",
        "address": f"{100 + index} Main St, {CITIES[index % 4]}, India",
        "phone": f"91-9{rng.randrange(1_000_000_000):09d}",
        "member_since": member_since,
    }

    if role == UserRole.INSTALLER:
        user["company_name"] = f"{last_name} Solar Solutions"
        user["specialties"] = [
            INSTALLER_SPECIALTIES[0][index % 3],
            INSTALLER_SPECIALTIES[1][index % 2],
        ]
        user["project_count"] = rng.randrange(10, 60)
    elif role == UserRole.SUPPLIER:
        user["company_name"] = f"{first_name} Energy Supplies"
        user["products_offered"] = [
            SUPPLIER_PRODUCT_LINES[0][index % 3],
            SUPPLIER_PRODUCT_LINES[1][index % 2],
        ]
        user["store_rating"] = round(3.5 + rng.random() * 1.5, 1)

    return MockUser(**user)


def generate_mock_users(per_role: int = 10, seed: int = 42) -> List[MockUser]:
    """Generate `per_role` users for each role, homeowners first."""
    return [
        generate_mock_user(role, index, seed)
        for role in UserRole
        for index in range(1, per_role + 1)
    ]


SAMPLE_PROMOTIONS: List[Dict] = [
    {
        "id": "promo-001",
        "author_id": "installer-user-001",
        "author_name": "ProSolar Installations Inc.",
        "author_role": "installer",
        "title": "Summer Solar Splash! 10% Off All Installations!",
        "content": (
            "Get a 10% discount on complete residential solar panel system "
            "installations booked this month."
        ),
        "discount": "10% Off Installation",
        "tags": ["Discount", "Installation", "Residential"],
        "post_date": "2024-07-15",
        "valid_until": "2024-08-15",
    },
    {
        "id": "promo-002",
        "author_id": "supplier-user-001",
        "author_name": "EcoSolar Supplies Ltd.",
        "author_role": "supplier",
        "title": "New Arrival: Ultra-Efficient 500W Solar Panels",
        "content": (
            "Our latest 500W monocrystalline panels reach 22.5% efficiency, "
            "ideal for limited roof space."
        ),
        "tags": ["New Product", "Panels", "High Efficiency"],
        "post_date": "2024-07-20",
    },
    {
        "id": "promo-003",
        "author_id": "installer-user-002",
        "author_name": "GreenFuture Solar Tech",
        "author_role": "installer",
        "title": "Free Energy Audit with Every Consultation",
        "content": "A comprehensive home energy audit, free with every solar consultation.",
        "tags": ["Free Service", "Consultation", "Energy Savings"],
        "post_date": "2024-07-22",
    },
    {
        "id": "promo-004",
        "author_id": "supplier-user-002",
        "author_name": "SunPower Components",
        "author_role": "supplier",
        "title": "Bulk Discount on Inverters - Limited Time!",
        "content": "15% off when you order 5 or more grid-tie inverters.",
        "discount": "15% Off Bulk Inverters",
        "tags": ["Discount", "Inverters", "Bulk Order", "Limited Time"],
        "post_date": "2024-07-25",
        "valid_until": "2024-08-30",
    },
]

SAMPLE_PRODUCTS: List[Dict] = [
    {
        "id": "prod-001",
        "supplier_id": "supplier-user-001",
        "supplier_name": "EcoSolar Supplies Ltd.",
        "name": "High-Efficiency Solar Panel 450W",
        "description": "450W monocrystalline panel for residential and commercial roofs.",
        "category": "Panels",
        "price": 250.00,
        "stock": 120,
    },
    {
        "id": "prod-002",
        "supplier_id": "supplier-user-001",
        "supplier_name": "EcoSolar Supplies Ltd.",
        "name": "5kW Grid-Tie Inverter",
        "description": "5kW grid-tie inverter with MPPT tracking.",
        "category": "Inverters",
        "price": 800.00,
        "stock": 45,
    },
    {
        "id": "prod-003",
        "supplier_id": "supplier-user-002",
        "supplier_name": "SunPower Components",
        "name": "Mounting Rail Kit (Set of 4)",
        "description": "Four aluminium rails with hardware for pitched roofs.",
        "category": "Mounting",
        "price": 75.00,
        "stock": 300,
    },
    {
        "id": "prod-004",
        "supplier_id": "supplier-user-002",
        "supplier_name": "SunPower Components",
        "name": "Solar Cable MC4 Connectors (10 Pairs)",
        "description": "UV resistant, waterproof MC4 connector pairs.",
        "category": "Accessories",
        "price": 25.00,
        "stock": 500,
    },
    {
        "id": "prod-005",
        "supplier_id": "supplier-user-001",
        "supplier_name": "EcoSolar Supplies Ltd.",
        "name": "10kWh Lithium Battery Storage",
        "description": "10kWh lithium-ion battery for backup and self-consumption.",
        "category": "Batteries",
        "price": 4500.00,
        "stock": 30,
    },
]

SAMPLE_MAINTENANCE_TASKS: List[Dict] = [
    {
        "id": "task-001",
        "user_id": "homeowner-user-001",
        "title": "Solar Panel Cleaning",
        "description": "Remove dust and debris with a soft brush and deionized water.",
        "task_type": MaintenanceTaskType.CLEANING,
        "frequency": MaintenanceFrequency.QUARTERLY,
        "last_completed": "2024-04-15",
        "estimated_duration_minutes": 60,
        "notes": "Check for visible damage while cleaning.",
    },
    {
        "id": "task-002",
        "user_id": "homeowner-user-001",
        "title": "Inverter & Connections Check",
        "description": "Look for inverter error codes and loose or corroded wiring.",
        "task_type": MaintenanceTaskType.INSPECTION,
        "frequency": MaintenanceFrequency.BI_ANNUALLY,
        "last_completed": "2024-01-20",
        "estimated_duration_minutes": 30,
    },
]


def sample_promotions() -> List[PromotionPost]:
    return [PromotionPost(**p) for p in SAMPLE_PROMOTIONS]


def sample_products() -> List[Product]:
    return [Product(**p) for p in SAMPLE_PRODUCTS]


def sample_maintenance_tasks() -> List[MaintenanceTask]:
    return [MaintenanceTask(**t) for t in SAMPLE_MAINTENANCE_TASKS]
