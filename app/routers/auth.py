from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from .. import auth_flow, models, schemas
from ..core.dependencies import get_current_user
from ..database import get_db
from ..utils import send_otp_email, send_welcome_email

router = APIRouter()


@router.post("/signup", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED)
def register_user(
        user_in: schemas.UserCreate,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    issued = auth_flow.signup(
        db,
        username=user_in.username,
        full_name=user_in.full_name,
        email=user_in.email,
        password=user_in.password
    )
    background_tasks.add_task(send_otp_email, issued.email, issued.code, issued.purpose)
    return {
        "message": "Registration initiated. Please check your email for verification code.",
        "email": issued.email
    }


@router.post("/login", response_model=schemas.LoginResponse)
def login_for_access_token(data: schemas.LoginRequest, db: Session = Depends(get_db)):
    result = auth_flow.login(db, email=data.email, password=data.password)
    message = "Admin login successful" if result.user.is_admin else "Login successful"
    return {"message": message, "token": result.token, "user": result.user}


@router.post("/verify-otp")
def verify_user_otp(
        data: schemas.VerifyOTP,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    result = auth_flow.verify_otp(db, email=data.email, code=data.code, purpose=data.purpose)

    if result.purpose == models.PURPOSE_SIGNUP:
        background_tasks.add_task(send_welcome_email, result.user.email, result.user.username)
        return schemas.VerifySignupResponse(
            message="Email verified and registration completed successfully",
            user=schemas.User.model_validate(result.user)
        ).model_dump(by_alias=True, mode="json")

    return schemas.VerifyResetResponse(
        message="OTP verified successfully. You can now reset your password.",
        email=result.user.email
    ).model_dump(by_alias=True, mode="json")


@router.post("/resend-otp", response_model=schemas.ResendResponse)
def resend_otp(
        data: schemas.ResendOTP,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    issued = auth_flow.resend_otp(db, email=data.email)
    background_tasks.add_task(send_otp_email, issued.email, issued.code, issued.purpose)
    return {
        "message": "New verification code sent to your email",
        "email": issued.email,
        "purpose": issued.purpose
    }


@router.post("/forgot-password", response_model=schemas.EmailAck)
def forgot_password(
        data: schemas.ForgotPassword,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    issued = auth_flow.request_password_reset(db, email=data.email)
    background_tasks.add_task(send_otp_email, issued.email, issued.code, issued.purpose)
    return {"message": "Password reset code sent to your email", "email": issued.email}


@router.post("/reset-password", response_model=schemas.Message)
def reset_password(data: schemas.ResetPassword, db: Session = Depends(get_db)):
    auth_flow.reset_password(db, email=data.email, code=data.code, new_password=data.new_password)
    return {"message": "Password updated successfully. You can now log in with your new password."}


@router.get("/user", response_model=schemas.User)
async def read_current_user(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.post("/logout", response_model=schemas.Message)
def logout():
    # tokens are stateless; the client drops its copy
    return {"message": "Logged out successfully"}
