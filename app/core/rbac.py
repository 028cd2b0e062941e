"""
Role/permission evaluation for the dashboard.

Permissions follow the pattern "category:resource:action", e.g.
"module:vendas-b2c:view" or "admin:users:manage". Two wildcard forms exist:

    "*"              every permission
    "module:*:view"  the given action on every resource of the category

Users holding the SUPER_ADMIN_ROLE pass every check regardless of their
permission list. Every function here is pure: no I/O, no state, no exceptions.
A request without an actor must be denied by the caller before reaching this
module.
"""
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

SUPER_ADMIN_ROLE = "ADM"
WILDCARD = "*"

# ── Module registry (dashboard sections, in menu order) ────────────────────
MODULES: tuple[str, ...] = (
    "vendas-b2c",
    "vendas-b2b",
    "customer-care",
    "cancelamentos",
    "cobranca",
    "alunos-ativos",
    "marketing",
)

MODULE_NAMES: Mapping[str, str] = MappingProxyType({
    "vendas-b2c": "Vendas B2C",
    "vendas-b2b": "Vendas B2B",
    "customer-care": "Customer Care",
    "cancelamentos": "Cancelamentos",
    "cobranca": "Cobranca",
    "alunos-ativos": "Alunos Ativos",
    "marketing": "Marketing",
})

# ── Permission catalog ─────────────────────────────────────────────────────
PERMISSIONS: Mapping[str, str] = MappingProxyType({
    # Dashboard modules
    "module:vendas-b2c:view": "Ver Vendas B2C",
    "module:vendas-b2b:view": "Ver Vendas B2B",
    "module:customer-care:view": "Ver Customer Care",
    "module:cancelamentos:view": "Ver Cancelamentos",
    "module:cobranca:view": "Ver Cobranca",
    "module:alunos-ativos:view": "Ver Alunos Ativos",
    "module:marketing:view": "Ver Marketing",
    # Administration
    "admin:users:manage": "Gerenciar Usuarios",
    "admin:config:view": "Ver Configuracoes",
    "admin:config:edit": "Editar Configuracoes",
    # Activities
    "activity:view:all": "Ver Todas Atividades",
    "activity:view:own": "Ver Atividades Proprias",
})

PERMISSION_CATEGORIES: Mapping[str, str] = MappingProxyType({
    "module": "Modulos",
    "admin": "Administracao",
    "activity": "Atividades",
})

# ── Roles ──────────────────────────────────────────────────────────────────
ROLE_PERMISSIONS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "ADM": (WILDCARD,),
    "Investidor": (
        "module:*:view",
        "activity:view:all",
        "admin:config:view",
    ),
    "Customer Care": (
        "module:customer-care:view",
        "module:cancelamentos:view",
        "module:cobranca:view",
        "activity:view:own",
    ),
    "Marketing": (
        "module:marketing:view",
        "activity:view:own",
    ),
})

ROLES: tuple[Mapping[str, str], ...] = (
    MappingProxyType({
        "name": "ADM",
        "display_name": "Administrador",
        "description": "Acesso total ao sistema, incluindo gestao de usuarios",
    }),
    MappingProxyType({
        "name": "Investidor",
        "display_name": "Investidor",
        "description": "Visualizacao de todos os dashboards e atividades",
    }),
    MappingProxyType({
        "name": "Customer Care",
        "display_name": "Customer Care",
        "description": "Acesso aos modulos de atendimento: CS, Cancelamentos, Cobranca",
    }),
    MappingProxyType({
        "name": "Marketing",
        "display_name": "Marketing",
        "description": "Acesso ao modulo de Marketing",
    }),
)


def _split(code: str) -> list[str] | None:
    parts = code.split(":")
    return parts if len(parts) == 3 else None


def module_permission(module_id: str, action: str = "view") -> str:
    return f"module:{module_id}:{action}"


# ── Evaluation ─────────────────────────────────────────────────────────────

def has_permission(role: str, permissions: Iterable[str], required: str) -> bool:
    """
    Decide whether an actor with `role` and `permissions` holds `required`.

    Checked in order: super-admin role, exact code, bare wildcard, and finally
    the middle-segment wildcard "category:*:action". A wildcard never crosses
    the action segment, and malformed codes only ever match literally.
    """
    if role == SUPER_ADMIN_ROLE:
        return True

    granted = permissions if isinstance(permissions, (set, frozenset)) else set(permissions)

    if required in granted:
        return True
    if WILDCARD in granted:
        return True

    parts = _split(required)
    if parts is not None:
        category, _, action = parts
        if f"{category}:{WILDCARD}:{action}" in granted:
            return True

    return False


def can_access_module(role: str, permissions: Iterable[str], module_id: str) -> bool:
    return has_permission(role, permissions, module_permission(module_id))


def can_manage_users(role: str, permissions: Iterable[str]) -> bool:
    return has_permission(role, permissions, "admin:users:manage")


def can_view_config(role: str, permissions: Iterable[str]) -> bool:
    return has_permission(role, permissions, "admin:config:view")


def can_edit_config(role: str, permissions: Iterable[str]) -> bool:
    return has_permission(role, permissions, "admin:config:edit")


def can_view_all_activities(role: str, permissions: Iterable[str]) -> bool:
    return has_permission(role, permissions, "activity:view:all")


def get_accessible_modules(
    role: str,
    permissions: Iterable[str],
    modules: Sequence[str] = MODULES,
) -> list[str]:
    """Modules the actor may view, in registry order."""
    granted = frozenset(permissions)
    return [m for m in modules if can_access_module(role, granted, m)]


def expand_permissions(
    permissions: Iterable[str],
    modules: Sequence[str] = MODULES,
    role_permissions: Mapping[str, Sequence[str]] = ROLE_PERMISSIONS,
) -> list[str]:
    """
    Resolve wildcards into the concrete codes they grant.

    "*" becomes every code referenced by `role_permissions`; "module:*:<action>"
    becomes one code per registered module. Middle wildcards in other
    categories have no expansion and are dropped. The result is deduplicated
    and keeps first-seen order.
    """
    expanded: dict[str, None] = {}

    def _add(code: str) -> None:
        parts = _split(code)
        if parts is not None and parts[1] == WILDCARD:
            category, _, action = parts
            if category == "module":
                for module_id in modules:
                    expanded.setdefault(module_permission(module_id, action))
            return
        expanded.setdefault(code)

    for perm in permissions:
        if perm == WILDCARD:
            for codes in role_permissions.values():
                for code in codes:
                    if code != WILDCARD:
                        _add(code)
        else:
            _add(perm)

    return list(expanded)


# ── Catalog helpers ────────────────────────────────────────────────────────

def get_permissions_by_category(
    catalog: Mapping[str, str] = PERMISSIONS,
) -> dict[str, list[dict[str, str]]]:
    grouped: dict[str, list[dict[str, str]]] = {}
    for code, label in catalog.items():
        category = code.split(":")[0]
        grouped.setdefault(category, []).append({"code": code, "label": label})
    return grouped


def is_valid_permission_code(code: str, catalog: Mapping[str, str] = PERMISSIONS) -> bool:
    """Whether `code` may be stored on a role (catalog code or a wildcard form)."""
    if code == WILDCARD or code in catalog:
        return True
    parts = _split(code)
    if parts is None or parts[1] != WILDCARD:
        return False
    category, _, action = parts
    return any(
        c.split(":")[0] == category and c.split(":")[2] == action for c in catalog
    )


def is_valid_role(name: str) -> bool:
    return any(r["name"] == name for r in ROLES)


def get_role_info(name: str) -> Mapping[str, str] | None:
    return next((r for r in ROLES if r["name"] == name), None)
