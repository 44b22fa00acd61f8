"""Sample catalog for local development and demos."""

from decimal import Decimal

from spabook.models import Service, StaffMember
from spabook.storage.database import SpaBookDB

SERVICES = [
    {"name": "Swedish Massage", "specialty": "Massage", "price": "60.00", "duration_minutes": 60},
    {"name": "Hot Stone Massage", "specialty": "Massage", "price": "85.00", "duration_minutes": 90},
    {"name": "Deep Tissue Massage", "specialty": "Massage", "price": "75.00", "duration_minutes": 60},
    {"name": "Hydrating Facial", "specialty": "Facial", "price": "55.00", "duration_minutes": 45},
    {"name": "Anti-Aging Facial", "specialty": "Facial", "price": "90.00", "duration_minutes": 60},
    {"name": "Manicure", "specialty": "Beauty", "price": "25.00", "duration_minutes": 30},
    {"name": "Couples Massage", "specialty": "Group", "price": "140.00", "duration_minutes": 60},
]

STAFF = [
    {"display_name": "Ana López", "specialty": "Massage"},
    {"display_name": "Marco Ruiz", "specialty": "Massage"},
    {"display_name": "Lucía Torres", "specialty": "Facial"},
    {"display_name": "Sofía Vega", "specialty": "Beauty"},
    {"display_name": "Diego Morales", "specialty": "Group"},
]


def seed_catalog(db: SpaBookDB) -> tuple[list[Service], list[StaffMember]]:
    """Insert the sample catalog unless services already exist."""
    if db.list_services():
        return db.list_services(), db.list_staff()

    services = [
        db.create_service(
            name=s["name"],
            specialty=s["specialty"],
            price=Decimal(s["price"]),
            duration_minutes=s["duration_minutes"],
        )
        for s in SERVICES
    ]
    staff = [db.create_staff(**m) for m in STAFF]
    return services, staff
