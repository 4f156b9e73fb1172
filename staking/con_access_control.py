# Role registry consulted by the staking ledger
DEFAULT_ADMIN_ROLE = "default_admin"
ADMIN_ROLE = "admin"
UPGRADE_ROLE = "upgrade"

roles = Hash(default_value=False)
role_admins = Hash(default_value=None)

RoleGrantedEvent = LogEvent(
    event="RoleGranted",
    params={
        "role": {"type": str, "idx": True},
        "account": {"type": str, "idx": True},
        "sender": {"type": str}
    }
)

RoleRevokedEvent = LogEvent(
    event="RoleRevoked",
    params={
        "role": {"type": str, "idx": True},
        "account": {"type": str, "idx": True},
        "sender": {"type": str}
    }
)

RoleAdminChangedEvent = LogEvent(
    event="RoleAdminChanged",
    params={
        "role": {"type": str, "idx": True},
        "previous_admin_role": {"type": str},
        "new_admin_role": {"type": str}
    }
)


@construct
def seed(initial_roles: list = None):
    if initial_roles is None:
        initial_roles = [ADMIN_ROLE, UPGRADE_ROLE]

    roles[DEFAULT_ADMIN_ROLE, ctx.caller] = True
    for role in initial_roles:
        roles[role, ctx.caller] = True


# Helper functions

def admin_role_of(role: str):
    admin_role = role_admins[role]
    if admin_role is None:
        return DEFAULT_ADMIN_ROLE
    return admin_role


def assert_role(role: str, account: str):
    assert roles[role, account] == True, f"account {account} is missing role {role}"


# Capability

@export
def has_role(role: str, account: str):
    return roles[role, account] == True


@export
def require_role(role: str, account: str):
    assert_role(role, account)


@export
def get_role_admin(role: str):
    return admin_role_of(role)


# Role management

@export
def grant_role(role: str, account: str):
    assert_role(admin_role_of(role), ctx.caller)
    assert account != "", "invalid account"

    if roles[role, account] == True:
        return

    roles[role, account] = True
    RoleGrantedEvent({"role": role, "account": account, "sender": ctx.caller})


@export
def revoke_role(role: str, account: str):
    assert_role(admin_role_of(role), ctx.caller)

    if roles[role, account] != True:
        return

    roles[role, account] = False
    RoleRevokedEvent({"role": role, "account": account, "sender": ctx.caller})


@export
def renounce_role(role: str):
    assert_role(role, ctx.caller)

    roles[role, ctx.caller] = False
    RoleRevokedEvent({"role": role, "account": ctx.caller, "sender": ctx.caller})


@export
def set_role_admin(role: str, admin_role: str):
    assert_role(DEFAULT_ADMIN_ROLE, ctx.caller)

    previous_admin_role = admin_role_of(role)
    role_admins[role] = admin_role
    RoleAdminChangedEvent({
        "role": role,
        "previous_admin_role": previous_admin_role,
        "new_admin_role": admin_role
    })
