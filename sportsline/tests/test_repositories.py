import json
import os
from decimal import Decimal

import pytest

from sportsline.errors import InsufficientStock, NotFound, ValidationError
from sportsline.models import Customer, DocumentType, OrderLine, OrderStatus, Product
from sportsline.repositories import AuditRepository, JsonUnitOfWork


def test_files_are_created_empty(data_dir, order_repo, audit_repo):
    with open(os.path.join(data_dir, 'pedidos.json'), encoding='utf-8') as f:
        assert json.load(f) == {}
    with open(os.path.join(data_dir, 'audit.json'), encoding='utf-8') as f:
        assert json.load(f) == []


def test_product_is_persisted_with_text_price(data_dir, product_repo):
    with open(os.path.join(data_dir, 'productos.json'), encoding='utf-8') as f:
        raw = json.load(f)
    assert raw['1']['price'] == '89.99'
    assert raw['1']['name'] == 'Balón'


def test_duplicate_product_code(product_repo):
    with pytest.raises(ValidationError):
        product_repo.create(Product(id=0, code='BAL-001', name='Otro', price='1.00'))

    created = product_repo.create(Product(id=0, code='MED-001', name='Medias', price='15.50', stock=5))
    assert created.id == 3


@pytest.mark.parametrize('operation,quantity,expected', [
    ('add', 5, 55),
    ('subtract', 20, 30),
    ('subtract', 80, 0),
    ('set', 7, 7),
])
def test_update_stock_operations(product_repo, operation, quantity, expected):
    assert product_repo.update_stock(1, quantity, operation).stock == expected
    assert product_repo.get(1).stock == expected


def test_update_stock_rejects_bad_input(product_repo):
    with pytest.raises(ValidationError):
        product_repo.update_stock(1, 5, 'multiply')
    with pytest.raises(ValidationError):
        product_repo.update_stock(1, -1, 'add')
    with pytest.raises(NotFound):
        product_repo.update_stock(99, 1, 'add')


def test_adjust_stock_never_goes_negative(product_repo):
    assert product_repo.adjust_stock(2, -30).stock == 0
    with pytest.raises(InsufficientStock):
        product_repo.adjust_stock(2, -1)
    assert product_repo.get(2).stock == 0


def test_find_low_stock(product_repo):
    product_repo.update_stock(2, 3, 'set')
    product_repo.update_stock(1, 8, 'set')

    low = product_repo.find_low_stock(10)
    assert [p.id for p in low] == [2, 1]
    assert product_repo.find_low_stock(5)[0].id == 2


def test_customer_uniqueness(customer_repo):
    with pytest.raises(ValidationError):
        customer_repo.create(Customer(id=0, name='X', email='otro@example.com', document='1001'))
    with pytest.raises(ValidationError):
        customer_repo.create(Customer(id=0, name='X', email='ana@example.com', document='9999'))
    assert customer_repo.find_by_document('1002').name == 'Luis Gómez'


def test_user_lookup_by_email_ignores_case(user_repo):
    user = user_repo.get_by_email('VENDEDOR@sportsline.com')
    assert user is not None
    assert user.id == 1
    assert user_repo.get_users_by_role('vendedor')[0].email == 'vendedor@sportsline.com'


def test_order_status_update(order_repo):
    order = order_repo.create_with_lines(1, 1, [OrderLine(1, 2, '10.00')], '20.00')
    updated = order_repo.update_status(order.id, OrderStatus.CONFIRMED)

    assert updated.status == OrderStatus.CONFIRMED
    assert order_repo.get(order.id).status == OrderStatus.CONFIRMED
    assert order_repo.get(order.id, include_lines=False).lines == []
    with pytest.raises(NotFound):
        order_repo.update_status(999, OrderStatus.CONFIRMED)


def test_unit_of_work_restores_every_file(order_repo, product_repo):
    with pytest.raises(RuntimeError):
        with JsonUnitOfWork(order_repo, product_repo):
            order_repo.create_with_lines(1, 1, [OrderLine(1, 2, '89.99')], '179.98')
            product_repo.adjust_stock(1, -2)
            raise RuntimeError('falla')

    assert order_repo.count_orders() == 0
    assert product_repo.get(1).stock == 50


def test_unit_of_work_commits_on_success(order_repo, product_repo):
    with JsonUnitOfWork(order_repo, product_repo):
        order_repo.create_with_lines(1, 1, [OrderLine(1, 2, '89.99')], '179.98')
        product_repo.adjust_stock(1, -2)

    assert order_repo.count_orders() == 1
    assert product_repo.get(1).stock == 48


def test_audit_log_is_newest_first_and_capped(data_dir, monkeypatch):
    monkeypatch.setattr(AuditRepository, 'MAX_LOGS', 3)
    repo = AuditRepository(data_dir)
    for i in range(5):
        repo.log('SISTEMA', 'admin', f'evento {i}', str(i))

    logs = repo.get_all()
    assert [log['message'] for log in logs] == ['evento 4', 'evento 3', 'evento 2']
    assert repo.get_logs_by_related_id('3')[0]['message'] == 'evento 3'
    assert repo.get_logs_by_type('SISTEMA') and repo.get_logs_by_type('PEDIDO') == []


def test_inventory_service_audits_manual_stock_changes(inventory_service, audit_service):
    product = inventory_service.update_stock(1, 10, 'add', user_id=1)

    assert product.stock == 60
    entry = audit_service.get_logs_by_type('STOCK')[0]
    assert entry['related_id'] == 'producto-1'
    assert entry['details']['new_stock'] == 60
    with pytest.raises(NotFound):
        inventory_service.get_product(42)


def test_inventory_low_stock_alerts(inventory_service):
    inventory_service.update_stock(2, 2, 'set')
    assert [p.id for p in inventory_service.get_low_stock_products()] == [2]


def test_product_categories_and_statistics(product_repo):
    product_repo.create(Product(id=3, code='GUA-001', name='Guantes', price='35.50', stock=4, category='futbol'))
    product_repo.create(Product(id=4, code='RED-001', name='Red', price='200.00', stock=2, category='tenis', active=False))
    product_repo.create(Product(id=5, code='VAR-001', name='Varios', price='1.00', stock=20))

    assert product_repo.get_categories() == ['futbol', 'ropa']
    assert [p.name for p in product_repo.find_by_category('futbol')] == ['Balón', 'Guantes']
    assert product_repo.find_by_category('tenis') == []
    assert [p.id for p in product_repo.find_by_category('tenis', active_only=False)] == [4]

    assert product_repo.get_statistics() == {
        'total': 5,
        'active': 4,
        'inactive': 1,
        'low_stock': 1,
        'categories': {'futbol': 2, 'ropa': 1, 'Sin categoría': 1},
        'total_value': Decimal('8261.50'),
    }


def test_customer_email_lookup_and_statistics(customer_repo):
    customer_repo.create(Customer(
        id=0, name='Marta Ruiz', email='marta@example.com', document='900123',
        document_type=DocumentType.NIT,
    ))

    assert customer_repo.find_by_email('ANA@example.com').id == 1
    assert customer_repo.find_by_email('nadie@example.com') is None
    assert customer_repo.get_statistics() == {
        'total': 3,
        'active': 2,
        'inactive': 1,
        'document_types': {'cedula': 1, 'pasaporte': 0, 'nit': 1},
    }


def test_inventory_catalog_queries(inventory_service):
    assert inventory_service.get_categories() == ['futbol', 'ropa']
    assert [p.code for p in inventory_service.get_products_by_category(' ropa ')] == ['CAM-001']
    with pytest.raises(ValidationError):
        inventory_service.get_products_by_category('')

    stats = inventory_service.get_statistics()
    assert stats['total'] == 2
    assert stats['low_stock'] == 0
    assert stats['total_value'] == Decimal('8099.50')
