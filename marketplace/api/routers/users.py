from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from marketplace.data.database import get_db
from marketplace.domain.exceptions import DomainError
from marketplace.services.user_service import UserService
from marketplace.domain.schemas import UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    service = UserService(db)
    return service.create_user(payload)

@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    service = UserService(db)
    try:
        return service.get_user(user_id)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
