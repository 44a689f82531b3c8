# gym_booking/routes/accounts.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from gym_booking import auth, schemas
from gym_booking.dependencies import get_account_service
from gym_booking.entities import Account, Role
from gym_booking.services.account_service import AccountService


router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"]
)

# Student Registration (Self Sign-up)
@router.post("/register", response_model=schemas.AccountOut, status_code=status.HTTP_201_CREATED)
def register_student(
    payload: schemas.AccountRegister,
    service: AccountService = Depends(get_account_service),
):
    account = service.register_account(
        name=payload.name,
        email=payload.email,
        role=Role.STUDENT,
        password=payload.password,
        avatar_url=payload.avatar_url,
        membership_type=payload.membership_type,
    )
    return schemas.account_out(account)

# Login (any role - JWT)
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.LoginRequest, service: AccountService = Depends(get_account_service)):
    account = service.authenticate(payload.email, payload.password)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = auth.create_access_token(data={"sub": account.id, "role": account.role})
    return schemas.Token(access_token=access_token, role=account.role, account_id=account.id)

@router.get("/me", response_model=schemas.AccountOut)
def read_me(current_account: Account = Depends(auth.get_current_account)):
    return schemas.account_out(current_account)

# Admin Only - List Students
@router.get("/students", response_model=List[schemas.StudentOut], dependencies=[Depends(auth.verify_admin_account)])
def list_students(service: AccountService = Depends(get_account_service)):
    return [schemas.account_out(s) for s in service.list_students()]

# Admin Only - Remove a Student
@router.delete("/students/{student_id}", dependencies=[Depends(auth.verify_admin_account)])
def remove_student(student_id: str, service: AccountService = Depends(get_account_service)):
    service.remove_student(student_id)
    return {"message": "Student removed successfully"}
