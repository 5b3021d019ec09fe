from __future__ import annotations


from auth.context import AuthResult
from common.forms import ChangePasswordForm, LoginForm, RegisterForm, SignupOtpForm

from .base import ScreenContext, validated


def login(sc: ScreenContext, email: str, password: str) -> bool:
    form = validated(sc, LoginForm, {"email": email, "password": password})
    if form is None:
        return False
    result = sc.auth.login(form.email, form.password)
    return _report(sc, result, ok="Logged in", failed="Login failed")


def register(
    sc: ScreenContext,
    name: str,
    email: str,
    password: str,
    confirm_password: str,
    *,
    verify_email: bool = True,
) -> bool:
    """Sign up. With `verify_email` a one-time code is mailed and the account is
    created by `verify_otp`; otherwise the account is created immediately."""
    form = validated(
        sc,
        RegisterForm,
        {"name": name, "email": email, "password": password, "confirm_password": confirm_password},
    )
    if form is None:
        return False
    if verify_email:
        result = sc.auth.request_signup_otp(form.name, form.email, form.password)
        if result.success:
            sc.toaster.success("OTP sent to your email")
            return True
        sc.toaster.error(result.message or "Registration failed")
        return False
    result = sc.auth.register(form.name, form.email, form.password, form.confirm_password)
    return _report(sc, result, ok="Account created", failed="Registration failed")


def verify_otp(sc: ScreenContext, email: str, otp: str) -> bool:
    form = validated(sc, SignupOtpForm, {"email": email, "otp": otp})
    if form is None:
        return False
    result = sc.auth.verify_signup_otp(form.email, form.otp)
    if result.success:
        sc.toaster.success("Account created")
        return True
    sc.toaster.error(result.message or "Invalid code")
    return False


def resend_otp(sc: ScreenContext, email: str) -> bool:
    if not email.strip():
        sc.toaster.error("Missing email for verification")
        return False
    result = sc.auth.resend_signup_otp(email.strip())
    return _report(sc, result, ok="OTP resent", failed="Failed to resend code")


def change_password(sc: ScreenContext, current_password: str, new_password: str, confirm_new_password: str) -> bool:
    sc.session()
    form = validated(
        sc,
        ChangePasswordForm,
        {
            "current_password": current_password,
            "new_password": new_password,
            "confirm_new_password": confirm_new_password,
        },
    )
    if form is None:
        return False
    result = sc.auth.change_password(form.current_password, form.new_password, form.confirm_new_password)
    return _report(sc, result, ok="Password changed", failed="Failed to change password")


def logout(sc: ScreenContext) -> None:
    sc.auth.logout()
    sc.toaster.success("Logged out")


def _report(sc: ScreenContext, result: AuthResult, *, ok: str, failed: str) -> bool:
    if result.success:
        sc.toaster.success(result.message or ok)
        return True
    sc.toaster.error(result.message or failed)
    return False


__all__ = ["change_password", "login", "logout", "register", "resend_otp", "verify_otp"]
