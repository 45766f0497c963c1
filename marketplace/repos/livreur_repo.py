# marketplace/repos/livreur_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.data.models.livreur import LivreurModel


class LivreurRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, livreur: LivreurModel) -> LivreurModel:
        self.db.add(livreur)
        self.db.commit()
        self.db.refresh(livreur)
        return livreur

    def get_by_user_id(self, user_id: int) -> LivreurModel | None:
        return self.db.execute(
            select(LivreurModel).where(LivreurModel.user_id == user_id)
        ).scalar_one_or_none()

    def list_active(self) -> list[LivreurModel]:
        """Zatwierdzeni i dostepni - filtr strefy/pojemnosci robi serwis."""
        return list(
            self.db.execute(
                select(LivreurModel)
                .where(
                    LivreurModel.status == "approved",
                    LivreurModel.is_available.is_(True),
                )
                .order_by(LivreurModel.id)
            ).scalars().all()
        )

    def update_livreur_version(self, livreur_id: int, old_version: int) -> int:
        # kazda zmiana current_orders podbija wersje kuriera
        return (
            self.db.query(LivreurModel)
            .filter(LivreurModel.id == livreur_id, LivreurModel.version == old_version)
            .update({"version": old_version + 1}, synchronize_session="evaluate")
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
