from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.web import (
    current_user_id,
    error_response,
    json_body,
    json_error,
    login_required,
    roles_required,
    server_error,
    start_session,
)
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        try:
            s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))
            start_session(s_user)
            return jsonify(
                {
                    "success": True,
                    "user": {
                        "id": s_user.user_id,
                        "name": s_user.full_name,
                        "email": s_user.email,
                        "role": s_user.role.value,
                        "organizationId": s_user.organization_id,
                    },
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Login failed", e)

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def logout():
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/auth/me", endpoint="auth_me")
    @login_required
    def me():
        try:
            user = container.user_service.get_profile(current_user_id())
            return jsonify({"success": True, "user": user.to_public_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/auth/signup", methods=["POST"], endpoint="auth_signup")
    def signup():
        data = json_body()
        try:
            user = container.auth_service.signup(
                email=data.get("email", ""),
                password=data.get("password", ""),
                confirm_password=data.get("confirmPassword", ""),
                first_name=data.get("firstName", ""),
                last_name=data.get("lastName", ""),
            )
            return (
                jsonify({"success": True, "message": "User created successfully", "user": user.to_public_dict()}),
                201,
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Internal server error", e)

    @app.route("/api/auth/forgot-password", methods=["POST"], endpoint="auth_forgot_password")
    def forgot_password():
        try:
            container.auth_service.forgot_password(json_body().get("email", ""))
            return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Internal server error", e)

    @app.route("/api/auth/validate-reset-token", methods=["POST"], endpoint="auth_validate_reset_token")
    def validate_reset_token():
        try:
            user = container.auth_service.validate_reset_token(json_body().get("token", ""))
            return jsonify({"success": True, "message": "Token is valid", "email": user.email})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/auth/reset-password", methods=["POST"], endpoint="auth_reset_password")
    def reset_password():
        data = json_body()
        try:
            container.auth_service.reset_password(
                data.get("token", ""), data.get("password", ""), data.get("confirmPassword", "")
            )
            return jsonify({"success": True, "message": "Password reset successful"})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Internal server error", e)

    @app.route("/api/auth/set-password", methods=["POST"], endpoint="auth_set_password")
    def set_password():
        data = json_body()
        try:
            user = container.auth_service.set_password(
                data.get("token", ""), data.get("password", ""), data.get("confirmPassword", "")
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Password set successfully. Your account is now activated.",
                    "user": user.to_public_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to set password", e)

    @app.route("/api/user/profile", methods=["GET", "PUT"], endpoint="user_profile")
    @login_required
    def profile():
        try:
            if request.method == "GET":
                user = container.user_service.get_profile(current_user_id())
            else:
                data = json_body()
                user = container.user_service.update_profile(
                    current_user_id(),
                    first_name=data.get("firstName", ""),
                    last_name=data.get("lastName", ""),
                    email=data.get("email", ""),
                )
                session["name"] = user.display_name
                session["email"] = user.email
            return jsonify({"success": True, "user": user.to_public_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to update profile", e)

    @app.route("/api/user/change-password", methods=["POST"], endpoint="user_change_password")
    @login_required
    def change_password():
        data = json_body()
        try:
            container.auth_service.change_password(
                current_user_id(),
                data.get("currentPassword", ""),
                data.get("newPassword", ""),
                data.get("confirmPassword", data.get("newPassword", "")),
            )
            return jsonify({"success": True, "message": "Password changed successfully"})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to change password", e)

    @app.route("/api/user/notifications", methods=["GET", "PUT"], endpoint="user_notifications")
    @login_required
    def notifications():
        try:
            if request.method == "GET":
                settings = container.user_service.get_notification_settings(current_user_id())
            else:
                settings = container.user_service.update_notification_settings(current_user_id(), json_body())
            return jsonify({"success": True, "settings": settings})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/users", endpoint="users_list")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def users_list():
        role_s = request.args.get("role")
        try:
            role = Role(role_s.upper()) if role_s else None
        except ValueError:
            return json_error("Invalid role", 400)
        try:
            users = container.user_service.list_organization_members(current_user_id(), role=role)
            return jsonify({"success": True, "users": [u.to_public_dict() for u in users]})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/users/search", endpoint="users_search")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def users_search():
        try:
            users = container.user_service.search_members(current_user_id(), request.args.get("q", ""))
            return jsonify({"success": True, "users": [u.to_public_dict() for u in users]})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/users/invite", methods=["POST"], endpoint="users_invite")
    @login_required
    def users_invite():
        data = json_body()
        try:
            user, email_sent = container.user_service.invite_developer(
                manager_id=current_user_id(),
                first_name=data.get("firstName", ""),
                last_name=data.get("lastName", ""),
                email=data.get("email", ""),
            )
            return (
                jsonify(
                    {
                        "success": True,
                        "message": "User invited successfully",
                        "user": user.to_public_dict(),
                        "emailSent": email_sent,
                    }
                ),
                201,
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to invite user", e)

    @app.route("/api/invite/validate", endpoint="invite_validate")
    def invite_validate():
        try:
            user = container.user_service.validate_invitation(request.args.get("token", ""))
            return jsonify(
                {
                    "success": True,
                    "user": {
                        "email": user.email,
                        "firstName": user.first_name,
                        "lastName": user.last_name,
                    },
                }
            )
        except DomainError as e:
            return error_response(e)
