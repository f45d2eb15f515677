"""JSON API for accounts and event registrations."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, Request, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import Registration, User
from .services import AuthService, RegistrationService

SESSION_COOKIE_NAME = "sessionId"


class _RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_RequestModel):
    name: str
    email: str
    password: str


class LoginRequest(_RequestModel):
    email: str
    password: str


class EventRegistrationRequest(_RequestModel):
    event_name: str


class UserSummary(_ResponseModel):
    id: str
    name: str
    email: str


class RegistrationView(_ResponseModel):
    event_name: str
    registered_at: datetime


class UserProfile(UserSummary):
    registrations: List[RegistrationView]
    created_at: datetime
    updated_at: datetime


class AuthResponse(_ResponseModel):
    message: str
    user: UserSummary


class MessageResponse(_ResponseModel):
    message: str


class EventRegistrationResponse(_ResponseModel):
    message: str
    registrations: List[RegistrationView]


class CurrentUserResponse(_ResponseModel):
    user: Optional[UserProfile]


class AdminUserEntry(_ResponseModel):
    name: str
    email: str
    registrations: List[RegistrationView]


class AdminRegistrationsResponse(_ResponseModel):
    users: List[AdminUserEntry]


def _registration_to_view(registration: Registration) -> RegistrationView:
    return RegistrationView(
        event_name=registration.event_name,
        registered_at=registration.registered_at,
    )


def _user_to_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, name=user.name, email=user.email)


def _user_to_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        name=user.name,
        email=user.email,
        registrations=[_registration_to_view(item) for item in user.registrations],
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _session_token(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE_NAME)


def register_api_routes(
    app: FastAPI,
    auth_service: AuthService,
    registration_service: RegistrationService,
    *,
    secure_cookies: bool,
    admin_guard: Callable[..., object],
) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    def _issue_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            SESSION_COOKIE_NAME,
            token,
            max_age=auth_service.sessions.cookie_max_age,
            secure=secure_cookies,
            httponly=True,
            samesite="lax",
            path="/",
        )

    def _clear_session_cookie(response: Response) -> None:
        response.delete_cookie(
            SESSION_COOKIE_NAME,
            path="/",
            secure=secure_cookies,
            httponly=True,
            samesite="lax",
        )

    def _current_user_id(token: Optional[str] = Depends(_session_token)) -> str:
        return auth_service.require_user_id(token)

    @app.post("/api/register", response_model=AuthResponse)
    def register(
        payload: RegisterRequest,
        response: Response,
        token: Optional[str] = Depends(_session_token),
    ) -> AuthResponse:
        result = auth_service.register(
            payload.name,
            payload.email,
            payload.password,
            previous_token=token,
        )
        _issue_session_cookie(response, result.session_token)
        return AuthResponse(message="Registered successfully", user=_user_to_summary(result.user))

    @app.post("/api/login", response_model=AuthResponse)
    def login(
        payload: LoginRequest,
        response: Response,
        token: Optional[str] = Depends(_session_token),
    ) -> AuthResponse:
        result = auth_service.login(payload.email, payload.password, previous_token=token)
        _issue_session_cookie(response, result.session_token)
        return AuthResponse(message="Logged in", user=_user_to_summary(result.user))

    @app.post("/api/logout", response_model=MessageResponse)
    def logout(
        response: Response,
        token: Optional[str] = Depends(_session_token),
    ) -> MessageResponse:
        auth_service.logout(token)
        _clear_session_cookie(response)
        return MessageResponse(message="Logged out")

    @app.post("/api/event/register", response_model=EventRegistrationResponse)
    def register_for_event(
        payload: EventRegistrationRequest,
        user_id: str = Depends(_current_user_id),
    ) -> EventRegistrationResponse:
        registrations = registration_service.register_for_event(user_id, payload.event_name)
        return EventRegistrationResponse(
            message="Registered for event",
            registrations=[_registration_to_view(item) for item in registrations],
        )

    @app.get("/api/me", response_model=CurrentUserResponse)
    def me(
        response: Response,
        token: Optional[str] = Depends(_session_token),
    ) -> CurrentUserResponse:
        user = auth_service.current_user(token)
        if user is None:
            if token:
                _clear_session_cookie(response)
            return CurrentUserResponse(user=None)
        return CurrentUserResponse(user=_user_to_profile(user))

    @app.get(
        "/api/admin/registrations",
        response_model=AdminRegistrationsResponse,
        dependencies=[Depends(admin_guard)],
    )
    def list_registrations() -> AdminRegistrationsResponse:
        users = registration_service.list_all_registrations()
        return AdminRegistrationsResponse(
            users=[
                AdminUserEntry(
                    name=user.name,
                    email=user.email,
                    registrations=[_registration_to_view(item) for item in user.registrations],
                )
                for user in users
            ]
        )


__all__ = ["register_api_routes", "SESSION_COOKIE_NAME"]
