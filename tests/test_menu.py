# tests/test_menu.py
from doceria.menu import LANDING_PAGE, MASTER_MENU, can_view, visible_menu
from doceria.models import Role


def ids(entries):
    return [entry.id for entry in entries]


def test_admin_sees_everything_in_order():
    assert ids(visible_menu(Role.ADMIN)) == ids(MASTER_MENU)


def test_atendente_menu():
    assert ids(visible_menu(Role.ATENDENTE)) == [
        'pagina-inicial', 'dashboard', 'clientes', 'pedidos', 'produtos',
        'agenda', 'fornecedores', 'relatorios',
    ]


def test_unauthenticated_sees_only_landing_page():
    assert ids(visible_menu(None)) == [LANDING_PAGE]


def test_role_as_string():
    assert ids(visible_menu("visitante")) == ids(visible_menu(Role.ATENDENTE))
    assert visible_menu("gerente") == []


def test_can_view():
    assert can_view(Role.ADMIN, 'financeiro')
    assert not can_view(Role.ATENDENTE, 'configuracoes')
    assert can_view(None, LANDING_PAGE)
    assert not can_view(None, 'dashboard')
    assert not can_view(Role.ADMIN, 'pagina-inexistente')
