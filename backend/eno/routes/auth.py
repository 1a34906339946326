# Overview: Flask API routes for authentication; sign-up, login, session and self-service updates.

from flask import Blueprint, request, jsonify, g

from ..permissions import menu_for
from ..services import auth_service, session_service, permission_service
from ..decorators import require_auth
from .errors import SERVICE_ERRORS, service_error_response, unexpected_error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(profile, session, token=None) -> dict:
    body = {
        "user": profile.to_dict(),
        "capabilities": sorted(permission_service.get_user_permissions(profile)),
        "menu": [item.to_dict() for item in menu_for(profile.role, profile.permissions)],
        "session": session.to_dict(),
    }
    if token is not None:
        body["token"] = token
    return body


def _open_session(profile):
    session, token = session_service.create_session(
        user_id=profile.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return _session_payload(profile, session, token)


@auth_bp.post("/signup")
def signup_route():
    """
    Register an account and sign it in.

    Body: email, password, full_name, invitation_token (optional).
    Without an invitation only the first CEO can register.
    """
    data = request.get_json(silent=True) or {}
    try:
        profile = auth_service.sign_up(
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            invitation_token=data.get("invitation_token"),
        )
        return _open_session(profile), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to sign up")


@auth_bp.post("/login")
def login_route():
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        profile = auth_service.authenticate(email, password)
        if not profile:
            return jsonify({"error": "Invalid credentials"}), 401

        return _open_session(profile), 200
    except Exception:
        return unexpected_error_response("Failed to login user")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return {"message": "Logged out"}, 200


@auth_bp.get("/session")
@require_auth
def session_route():
    return _session_payload(g.current_user, g.session_context.session), 200


@auth_bp.patch("/user")
@require_auth
def update_user_route():
    """Self-service update of full_name and/or password."""
    data = request.get_json(silent=True) or {}
    try:
        profile = auth_service.update_own_account(
            g.current_user,
            full_name=data.get("full_name"),
            password=data.get("password"),
        )
        return {"user": profile.to_dict()}, 200
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to update user")


@auth_bp.post("/invitations/accept")
def accept_invitation_route():
    data = request.get_json(silent=True) or {}
    try:
        profile = auth_service.accept_invitation(
            token=data.get("token"),
            password=data.get("password"),
            full_name=data.get("full_name"),
        )
        return _open_session(profile), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception:
        return unexpected_error_response("Failed to accept invitation")
