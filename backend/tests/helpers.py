from ndrop.core.security import create_access_token, create_admin_token


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def admin_headers(admin, role_id: int = 2) -> dict:
    return {"Authorization": f"Bearer {create_admin_token(admin.id, admin.username, role_id)}"}
