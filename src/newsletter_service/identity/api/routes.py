from html import escape
from uuid import UUID

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, Response

from newsletter_service.dependencies import (
    get_auth_service,
    get_flash,
    get_sessions,
    require_user_id,
)
from newsletter_service.identity.application.auth_service import AuthService, Credentials
from newsletter_service.shared.exceptions import InvalidCredentialsError, ValidationError
from newsletter_service.shared.http.flash import FlashMessage, FlashMessages
from newsletter_service.shared.http.pages import render_page
from newsletter_service.shared.http.responses import see_other
from newsletter_service.shared.http.session import TypedSession
from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Identity"])

LOGIN_FAILED_MESSAGE = "Authentication failed"
PASSWORD_CHANGED_MESSAGE = "Your password has been changed."
LOGGED_OUT_MESSAGE = "You have successfully logged out."
WRONG_CURRENT_PASSWORD_MESSAGE = "The current password is incorrect."


def _html_page(request: Request, flash: FlashMessages, title: str, body: str) -> HTMLResponse:
    response = HTMLResponse(render_page(title, body, flash.incoming(request)))
    flash.consume(request, response)
    return response


@router.get("/", response_class=HTMLResponse)
async def home() -> HTMLResponse:
    return HTMLResponse(render_page("Home", "<p>Welcome to our newsletter!</p>"))


# ───────────────────────────── Login ─────────────────────────────

@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request, flash: FlashMessages = Depends(get_flash)) -> HTMLResponse:
    body = (
        '<form action="/login" method="post">\n'
        '    <label>Username <input type="text" placeholder="Enter Username" name="username"></label>\n'
        '    <label>Password <input type="password" placeholder="Enter Password" name="password"></label>\n'
        '    <button type="submit">Login</button>\n'
        "</form>"
    )
    return _html_page(request, flash, "Login", body)


@router.post("/login")
async def login(
    username: str = Form(...),
    password: str = Form(...),
    auth: AuthService = Depends(get_auth_service),
    flash: FlashMessages = Depends(get_flash),
    sessions: TypedSession = Depends(get_sessions),
) -> Response:
    try:
        user_id = await auth.validate_credentials(Credentials(username, password))
    except InvalidCredentialsError as e:
        logger.info("Login rejected", reason=e.message)
        response = see_other("/login")
        flash.send(response, FlashMessage.error(LOGIN_FAILED_MESSAGE))
        return response

    logger.info("Login succeeded", user_id=str(user_id))
    response = see_other("/admin/dashboard")
    sessions.start(response, user_id)
    return response


# ───────────────────────────── Admin ─────────────────────────────

@router.get("/admin/dashboard", response_class=HTMLResponse)
async def admin_dashboard(
    request: Request,
    user_id: UUID = Depends(require_user_id),
    auth: AuthService = Depends(get_auth_service),
    flash: FlashMessages = Depends(get_flash),
) -> HTMLResponse:
    username = await auth.get_username(user_id)
    body = (
        f"<p>Welcome {escape(username)}!</p>\n"
        "<p>Available actions:</p>\n"
        "<ol>\n"
        '    <li><a href="/admin/newsletters">Send a newsletter issue</a></li>\n'
        '    <li><a href="/admin/password">Change password</a></li>\n'
        "    <li>\n"
        '        <form name="logoutForm" action="/admin/logout" method="post">\n'
        '            <input type="submit" value="Logout">\n'
        "        </form>\n"
        "    </li>\n"
        "</ol>"
    )
    return _html_page(request, flash, "Admin dashboard", body)


@router.get("/admin/password", response_class=HTMLResponse)
async def change_password_form(
    request: Request,
    user_id: UUID = Depends(require_user_id),
    flash: FlashMessages = Depends(get_flash),
) -> HTMLResponse:
    body = (
        '<form action="/admin/password" method="post">\n'
        '    <label>Current password <input type="password" name="current_password"></label>\n'
        '    <label>New password <input type="password" name="new_password"></label>\n'
        '    <label>Confirm new password <input type="password" name="new_password_check"></label>\n'
        '    <button type="submit">Change password</button>\n'
        "</form>\n"
        '<p><a href="/admin/dashboard">&lt;- Back</a></p>'
    )
    return _html_page(request, flash, "Change Password", body)


@router.post("/admin/password")
async def change_password(
    current_password: str = Form(...),
    new_password: str = Form(...),
    new_password_check: str = Form(...),
    user_id: UUID = Depends(require_user_id),
    auth: AuthService = Depends(get_auth_service),
    flash: FlashMessages = Depends(get_flash),
) -> Response:
    response = see_other("/admin/password")
    try:
        await auth.change_password(user_id, current_password, new_password, new_password_check)
    except ValidationError as e:
        flash.send(response, FlashMessage.error(e.message))
        return response
    except InvalidCredentialsError:
        flash.send(response, FlashMessage.error(WRONG_CURRENT_PASSWORD_MESSAGE))
        return response

    flash.send(response, FlashMessage.info(PASSWORD_CHANGED_MESSAGE))
    return response


@router.post("/admin/logout")
async def logout(
    user_id: UUID = Depends(require_user_id),
    flash: FlashMessages = Depends(get_flash),
    sessions: TypedSession = Depends(get_sessions),
) -> Response:
    response = see_other("/login")
    sessions.end(response)
    flash.send(response, FlashMessage.info(LOGGED_OUT_MESSAGE))
    logger.info("Logged out", user_id=str(user_id))
    return response
