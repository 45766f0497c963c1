# marketplace/data/seed.py
from marketplace.data.database import Base, SessionLocal, engine
from marketplace.data.models import LivreurModel, UserModel
from marketplace.utils.settings import DEFAULT_MAX_ORDERS_AT_ONCE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

USERS = [
    {"id": 1, "name": "Admin", "role": "admin", "email": "admin@example.com"},
    {"id": 2, "name": "Boutique Carthage", "role": "vendor", "email": "vendor@example.com"},
    {"id": 3, "name": "Amira Ben Salah", "role": "user", "phone": "+21620000003"},
    {"id": 10, "name": "Karim Trabelsi", "role": "livreur", "phone": "+21620000010"},
    {"id": 11, "name": "Sami Jebali", "role": "livreur", "phone": "+21620000011"},
]

LIVREURS = [
    {"user_id": 10, "zone": "Tunis", "additional_zones": ["Ariana", "La Marsa"], "vehicle_type": "moto", "rating": 4.8},
    {"user_id": 11, "zone": "Sfax", "additional_zones": [], "vehicle_type": "voiture", "rating": 4.2},
]


def seed():
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(LivreurModel).first():
            return
        for u in USERS:
            if not db.get(UserModel, u["id"]):
                db.add(UserModel(**u))
        for l in LIVREURS:
            db.add(
                LivreurModel(
                    status="approved",
                    is_available=True,
                    max_orders_at_once=DEFAULT_MAX_ORDERS_AT_ONCE,
                    version=1,
                    **l,
                )
            )
        db.commit()
        logger.info(f"Seeded {len(USERS)} users and {len(LIVREURS)} livreurs")
    finally:
        db.close()


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    seed()
