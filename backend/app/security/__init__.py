# Security module
from app.security.auth import (
    get_password_hash, verify_password, create_access_token,
    get_current_principal, require
)
from app.security.identity import IdentityResolver, Principal, Rejection, RejectionKind
from app.security.policy import AuthorizationRule, Decision, authorize, can_manage

__all__ = [
    'get_password_hash', 'verify_password', 'create_access_token',
    'get_current_principal', 'require',
    'IdentityResolver', 'Principal', 'Rejection', 'RejectionKind',
    'AuthorizationRule', 'Decision', 'authorize', 'can_manage'
]
