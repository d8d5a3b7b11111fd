"""
Tests del servicio de pedidos: creación, cambios de estado, cancelación
y consultas. Cada test trabaja sobre archivos JSON en tmp_path.
"""
import itertools
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from sportsline.errors import (
    InsufficientStock,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from sportsline.models import (
    ORDER_STATUS_TRANSITIONS,
    CreateOrderRequest,
    OrderFilters,
    OrderLineRequest,
    OrderStatus,
)

USER_ID = 1


def make_request(*lines, customer_id=1, notes=None):
    return CreateOrderRequest(
        customer_id=customer_id,
        lines=[OrderLineRequest(product_id=pid, quantity=qty) for pid, qty in lines],
        notes=notes,
    )


def stock_of(product_repo, product_id):
    return product_repo.get(product_id).stock


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------

def test_create_order_reserves_stock_and_computes_total(order_service, product_repo, order_repo):
    order = order_service.create_order(make_request((1, 2), (2, 1), notes='Entregar en tienda'), USER_ID)

    assert order.status == OrderStatus.PENDING
    assert order.total == Decimal('299.98')
    assert order.total == order.lines_total()
    assert [(l.product_id, l.quantity, l.unit_price) for l in order.lines] == [
        (1, 2, Decimal('89.99')),
        (2, 1, Decimal('120.00')),
    ]
    assert stock_of(product_repo, 1) == 48
    assert stock_of(product_repo, 2) == 29

    stored = order_repo.get(order.id)
    assert stored.total == Decimal('299.98')
    assert stored.notes == 'Entregar en tienda'
    assert len(stored.lines) == 2


def test_create_order_is_audited(order_service, audit_service):
    order = order_service.create_order(make_request((1, 1)), USER_ID)

    history = audit_service.get_order_history(order.id)
    types = {entry['type'] for entry in history}
    assert types == {'PEDIDO', 'STOCK'}


def test_insufficient_stock_leaves_everything_untouched(order_service, product_repo, order_repo):
    with pytest.raises(InsufficientStock) as exc_info:
        order_service.create_order(make_request((1, 100)), USER_ID)

    err = exc_info.value
    assert err.product_name == 'Balón'
    assert err.available == 50
    assert err.requested == 100
    assert stock_of(product_repo, 1) == 50
    assert order_repo.count_orders() == 0


def test_insufficient_stock_reports_every_short_line(order_service):
    with pytest.raises(InsufficientStock) as exc_info:
        order_service.create_order(make_request((1, 100), (2, 31)), USER_ID)

    shortages = exc_info.value.shortages
    assert [s['product_id'] for s in shortages] == [1, 2]
    assert exc_info.value.to_dict()['error'] == 'insufficient_stock'


def test_repeated_product_lines_are_checked_together(order_service, product_repo):
    with pytest.raises(InsufficientStock) as exc_info:
        order_service.create_order(make_request((1, 30), (1, 30)), USER_ID)

    assert exc_info.value.requested == 60
    assert stock_of(product_repo, 1) == 50


def test_price_is_captured_at_order_time(order_service, product_repo, order_repo):
    order = order_service.create_order(make_request((1, 1)), USER_ID)

    product = product_repo.get(1)
    product.price = Decimal('150.00')
    product_repo.save(product)

    assert order_repo.get(order.id).lines[0].unit_price == Decimal('89.99')


def test_unknown_customer(order_service):
    with pytest.raises(NotFound):
        order_service.create_order(make_request((1, 1), customer_id=99), USER_ID)


def test_inactive_customer(order_service, product_repo):
    with pytest.raises(InvalidState):
        order_service.create_order(make_request((1, 1), customer_id=2), USER_ID)
    assert stock_of(product_repo, 1) == 50


def test_unknown_user(order_service):
    with pytest.raises(NotFound):
        order_service.create_order(make_request((1, 1)), 42)


def test_unknown_or_inactive_product(order_service, product_repo, order_repo):
    with pytest.raises(NotFound):
        order_service.create_order(make_request((1, 1), (77, 1)), USER_ID)

    product = product_repo.get(2)
    product.active = False
    product_repo.save(product)
    with pytest.raises(NotFound):
        order_service.create_order(make_request((2, 1)), USER_ID)

    assert stock_of(product_repo, 1) == 50
    assert order_repo.count_orders() == 0


def test_failure_midway_rolls_back_order_and_stock(order_service, product_repo, order_repo, monkeypatch):
    original = product_repo.adjust_stock

    def failing_adjust(product_id, delta):
        if product_id == 2:
            raise RuntimeError('disco lleno')
        return original(product_id, delta)

    monkeypatch.setattr(product_repo, 'adjust_stock', failing_adjust)

    with pytest.raises(RuntimeError):
        order_service.create_order(make_request((1, 2), (2, 1)), USER_ID)

    assert stock_of(product_repo, 1) == 50
    assert stock_of(product_repo, 2) == 30
    assert order_repo.count_orders() == 0


def test_concurrent_orders_never_oversell(order_service, product_repo, order_repo):
    def place_one(_):
        try:
            order_service.create_order(make_request((2, 1)), USER_ID)
            return True
        except InsufficientStock:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(place_one, range(40)))

    assert results.count(True) == 30
    assert stock_of(product_repo, 2) == 0
    assert order_repo.count_orders() == 30


def test_create_order_request_validation():
    with pytest.raises(ValidationError):
        make_request()
    with pytest.raises(ValidationError) as exc_info:
        make_request((1, 0), (0, 1))
    assert len(exc_info.value.errors) == 2

    request = CreateOrderRequest.from_dict({
        'clienteId': '1',
        'productos': [{'productoId': 1, 'cantidad': 2}],
        'observaciones': 'Regalo',
    })
    assert request.customer_id == 1
    assert request.lines == [OrderLineRequest(product_id=1, quantity=2)]
    assert request.notes == 'Regalo'


# ---------------------------------------------------------------------------
# status transitions and cancellation
# ---------------------------------------------------------------------------

EXPECTED_TRANSITIONS = {
    ('pending', 'confirmed'),
    ('pending', 'cancelled'),
    ('confirmed', 'shipped'),
    ('confirmed', 'cancelled'),
    ('shipped', 'delivered'),
}


@pytest.mark.parametrize('current,target', list(itertools.product(OrderStatus, OrderStatus)))
def test_transition_table(current, target):
    allowed = (current.value, target.value) in EXPECTED_TRANSITIONS
    assert current.can_transition_to(target) is allowed


def test_terminal_states_have_no_exits():
    terminal = {s for s in OrderStatus if not ORDER_STATUS_TRANSITIONS[s]}
    assert terminal == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    assert all(s.is_terminal for s in terminal)


def test_full_lifecycle(order_service, audit_service):
    order = order_service.create_order(make_request((1, 1)), USER_ID)

    for status in ('confirmed', 'shipped', 'delivered'):
        order = order_service.update_status(order.id, status, USER_ID)
        assert order.status.value == status

    messages = [e['message'] for e in audit_service.get_order_history(order.id)]
    assert any('delivered' in m for m in messages)


def test_illegal_transition_is_rejected(order_service, order_repo):
    order = order_service.create_order(make_request((1, 1)), USER_ID)

    with pytest.raises(InvalidTransition) as exc_info:
        order_service.update_status(order.id, 'delivered', USER_ID)

    assert exc_info.value.current == 'pending'
    assert exc_info.value.requested == 'delivered'
    assert order_repo.get(order.id).status == OrderStatus.PENDING


STEPS_TO_REACH = {
    OrderStatus.PENDING: [],
    OrderStatus.CONFIRMED: ['confirmed'],
    OrderStatus.SHIPPED: ['confirmed', 'shipped'],
    OrderStatus.DELIVERED: ['confirmed', 'shipped', 'delivered'],
    OrderStatus.CANCELLED: ['cancelled'],
}

DISALLOWED_TRANSITIONS = [
    (current, target)
    for current, target in itertools.product(OrderStatus, OrderStatus)
    if (current.value, target.value) not in EXPECTED_TRANSITIONS
]


@pytest.mark.parametrize('current,target', DISALLOWED_TRANSITIONS)
def test_disallowed_transition_leaves_order_and_stock_untouched(
    order_service, order_repo, product_repo, current, target
):
    order = order_service.create_order(make_request((1, 2), (2, 1)), USER_ID)
    for status in STEPS_TO_REACH[current]:
        order_service.update_status(order.id, status, USER_ID)
    before = order_repo.get(order.id)
    stock_before = (stock_of(product_repo, 1), stock_of(product_repo, 2))

    with pytest.raises(InvalidTransition):
        order_service.update_status(order.id, target, USER_ID)

    after = order_repo.get(order.id)
    assert after.status == current
    assert after.updated_at == before.updated_at
    assert (stock_of(product_repo, 1), stock_of(product_repo, 2)) == stock_before


def test_unknown_status_value(order_service):
    order = order_service.create_order(make_request((1, 1)), USER_ID)
    with pytest.raises(ValidationError):
        order_service.update_status(order.id, 'lost', USER_ID)


def test_update_status_of_missing_order(order_service):
    with pytest.raises(NotFound):
        order_service.update_status(999, 'confirmed', USER_ID)


def test_delivered_order_is_immutable(order_service, product_repo):
    order = order_service.create_order(make_request((1, 3)), USER_ID)
    for status in ('confirmed', 'shipped', 'delivered'):
        order_service.update_status(order.id, status, USER_ID)

    for status in OrderStatus:
        with pytest.raises(InvalidTransition):
            order_service.update_status(order.id, status, USER_ID)
    with pytest.raises(InvalidState):
        order_service.cancel_order(order.id, USER_ID)

    assert stock_of(product_repo, 1) == 47


def test_cancel_restores_stock(order_service, product_repo, order_repo):
    order = order_service.create_order(make_request((1, 2), (2, 1)), USER_ID)

    cancelled = order_service.cancel_order(order.id, USER_ID)

    assert cancelled.status == OrderStatus.CANCELLED
    assert stock_of(product_repo, 1) == 50
    assert stock_of(product_repo, 2) == 30
    assert order_repo.get(order.id).status == OrderStatus.CANCELLED


def test_cancel_twice_fails_without_double_restore(order_service, product_repo):
    order = order_service.create_order(make_request((1, 2)), USER_ID)
    order_service.cancel_order(order.id, USER_ID)

    with pytest.raises(InvalidState):
        order_service.cancel_order(order.id, USER_ID)
    with pytest.raises(InvalidTransition):
        order_service.update_status(order.id, 'confirmed', USER_ID)

    assert stock_of(product_repo, 1) == 50


def test_status_update_to_cancelled_restores_stock(order_service, product_repo):
    order = order_service.create_order(make_request((2, 5)), USER_ID)
    order_service.update_status(order.id, 'confirmed', USER_ID)

    cancelled = order_service.update_status(order.id, 'cancelled', USER_ID)

    assert cancelled.status == OrderStatus.CANCELLED
    assert stock_of(product_repo, 2) == 30


def test_shipped_order_cancel(order_service, product_repo):
    order = order_service.create_order(make_request((2, 5)), USER_ID)
    order_service.update_status(order.id, 'confirmed', USER_ID)
    order_service.update_status(order.id, 'shipped', USER_ID)

    with pytest.raises(InvalidTransition):
        order_service.update_status(order.id, 'cancelled', USER_ID)

    order_service.cancel_order(order.id, USER_ID)
    assert stock_of(product_repo, 2) == 30


def test_cancel_missing_order(order_service):
    with pytest.raises(NotFound):
        order_service.cancel_order(12345, USER_ID)


# ---------------------------------------------------------------------------
# queries and statistics
# ---------------------------------------------------------------------------

def test_list_orders_paginates_newest_first(order_service):
    ids = [order_service.create_order(make_request((1, 1)), USER_ID).id for _ in range(3)]

    page1 = order_service.list_orders({'page': 1, 'limit': 2})
    assert [o.id for o in page1['orders']] == [ids[2], ids[1]]
    assert page1['pagination'] == {
        'page': 1, 'limit': 2, 'total': 3, 'total_pages': 2,
        'has_next': True, 'has_prev': False,
    }

    page2 = order_service.list_orders({'page': '2', 'limit': '2'})
    assert [o.id for o in page2['orders']] == [ids[0]]
    assert page2['pagination']['has_next'] is False
    assert page2['pagination']['has_prev'] is True


def test_list_orders_filters(order_service):
    first = order_service.create_order(make_request((1, 1)), USER_ID)
    second = order_service.create_order(make_request((2, 1)), USER_ID)
    order_service.cancel_order(first.id, USER_ID)

    by_status = order_service.list_orders({'status': 'cancelled'})
    assert [o.id for o in by_status['orders']] == [first.id]

    by_product = order_service.list_orders({'product_id': 2})
    assert [o.id for o in by_product['orders']] == [second.id]

    with pytest.raises(ValidationError):
        order_service.list_orders({'limit': 500})


@pytest.mark.parametrize('kwargs', [
    {'page': '2'},
    {'limit': 2.5},
    {'page': True},
    {'customer_id': 'uno'},
    {'product_id': 0},
    {'status': 'lost'},
])
def test_filters_built_directly_are_validated(kwargs):
    with pytest.raises(ValidationError):
        OrderFilters(**kwargs)


def test_filters_accept_status_text():
    assert OrderFilters(status='shipped').status == OrderStatus.SHIPPED


def test_orders_by_status_and_recent_orders(order_service, order_repo):
    ids = [order_service.create_order(make_request((1, 1)), USER_ID).id for _ in range(3)]
    order_service.update_status(ids[0], 'confirmed', USER_ID)

    pending = order_service.get_orders_by_status('pending', page=1, limit=1)
    assert [o.id for o in pending['orders']] == [ids[2]]
    assert pending['pagination']['total'] == 2
    assert pending['pagination']['has_next'] is True

    confirmed = order_service.get_orders_by_status(OrderStatus.CONFIRMED)
    assert [o.id for o in confirmed['orders']] == [ids[0]]

    with pytest.raises(ValidationError):
        order_service.get_orders_by_status('lost')
    with pytest.raises(ValidationError):
        order_service.get_orders_by_status('pending', page=0)

    assert [o.id for o in order_service.get_recent_orders(limit=2)] == [ids[2], ids[1]]
    assert order_repo.find_recent('2999-01-01T00:00:00+00:00') == []
    with pytest.raises(ValidationError):
        order_service.get_recent_orders(limit=0)


def test_orders_by_customer_product_and_dates(order_service):
    order = order_service.create_order(make_request((1, 1)), USER_ID)

    assert [o.id for o in order_service.get_orders_by_customer(1)] == [order.id]
    assert [o.id for o in order_service.get_orders_by_product(1)] == [order.id]
    assert order_service.get_orders_by_product(2) == []
    with pytest.raises(NotFound):
        order_service.get_orders_by_customer(99)

    in_range = order_service.get_orders_by_date_range(
        '2000-01-01T00:00:00Z', '2100-01-01T00:00:00Z'
    )
    assert [o.id for o in in_range] == [order.id]
    with pytest.raises(ValidationError):
        order_service.get_orders_by_date_range('2100-01-01', '2000-01-01')


def test_get_order(order_service):
    order = order_service.create_order(make_request((1, 1)), USER_ID)
    assert order_service.get_order(order.id).id == order.id
    with pytest.raises(NotFound):
        order_service.get_order(order.id + 1)


def test_statistics(order_service):
    first = order_service.create_order(make_request((1, 2), (2, 1)), USER_ID)
    order_service.create_order(make_request((2, 1)), USER_ID)
    order_service.update_status(first.id, 'confirmed', USER_ID)

    stats = order_service.get_statistics()

    assert stats['total_orders'] == 2
    assert stats['orders_by_status']['confirmed'] == 1
    assert stats['orders_by_status']['pending'] == 1
    assert stats['orders_by_status']['delivered'] == 0
    assert stats['total_sales'] == Decimal('419.98')
    assert stats['average_order'] == Decimal('209.99')
    assert stats['orders_last_month'] == 2


def test_statistics_without_orders(order_service):
    stats = order_service.get_statistics()
    assert stats['total_orders'] == 0
    assert stats['average_order'] == Decimal('0.00')
