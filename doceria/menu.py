# menu.py
# Menu lateral filtrado pelo papel do usuário

from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from doceria.models import Role

ADMIN = Role.ADMIN.value
ATENDENTE = Role.ATENDENTE.value
STAFF = frozenset({ADMIN, ATENDENTE})


@dataclass(frozen=True)
class MenuEntry:
    id: str
    label: str
    icon: str
    roles: FrozenSet[Optional[str]]


# Cada entrada declara sozinha quem pode vê-la; None = sessão não autenticada
MASTER_MENU = (
    MenuEntry('pagina-inicial', 'Página Inicial', 'ph.house', frozenset({ADMIN, ATENDENTE, None})),
    MenuEntry('dashboard', 'Dashboard', 'ph.chart-line', STAFF),
    MenuEntry('clientes', 'Clientes', 'ph.users', STAFF),
    MenuEntry('pedidos', 'Pedidos', 'ph.notebook', STAFF),
    MenuEntry('produtos', 'Produtos', 'ph.cake', STAFF),
    MenuEntry('agenda', 'Agenda', 'ph.calendar', STAFF),
    MenuEntry('fornecedores', 'Fornecedores', 'ph.truck', STAFF),
    MenuEntry('relatorios', 'Relatórios', 'ph.chart-bar', STAFF),
    MenuEntry('financeiro', 'Financeiro', 'ph.currency-dollar', frozenset({ADMIN})),
    MenuEntry('configuracoes', 'Configurações', 'ph.gear', frozenset({ADMIN})),
)

LANDING_PAGE = 'pagina-inicial'


def _role_key(role) -> Optional[str]:
    if role is None:
        return None
    return role.value if isinstance(role, Role) else str(role)


def visible_menu(role) -> List[MenuEntry]:
    """Entradas do menu permitidas ao papel, na ordem do menu principal."""
    key = _role_key(role)
    return [entry for entry in MASTER_MENU if key in entry.roles]


def can_view(role, page_id: str) -> bool:
    key = _role_key(role)
    return any(entry.id == page_id and key in entry.roles for entry in MASTER_MENU)
