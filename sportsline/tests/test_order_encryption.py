from decimal import Decimal

import pytest

from sportsline.errors import DecryptionError, ValidationError
from sportsline.models import CreateOrderRequest, OrderLineRequest
from sportsline.services import OrderEncryptionService


@pytest.fixture
def order_encryption(encryption_service, rsa_keys, audit_service):
    public_pem, private_pem = rsa_keys
    return OrderEncryptionService(encryption_service, public_pem, private_pem, audit_service)


@pytest.fixture
def order(order_service):
    request = CreateOrderRequest(
        customer_id=1,
        lines=[OrderLineRequest(1, 2), OrderLineRequest(2, 1)],
        notes='Entregar antes del sábado',
    )
    return order_service.create_order(request, 1)


def test_order_data_round_trip(order_encryption, order):
    encrypted = order_encryption.encrypt_order_data(order)

    assert encrypted.order_id == order.id
    assert 'encryptedNotes' in encrypted.to_dict()

    plain = order_encryption.decrypt_order_data(encrypted)
    assert plain['order_id'] == order.id
    assert plain['notes'] == 'Entregar antes del sábado'
    assert plain['lines'] == [line.to_dict() for line in order.lines]
    assert plain['metadata']['total'] == '299.98'
    assert plain['metadata']['status'] == 'pending'
    assert Decimal(plain['metadata']['total']) == order.total


def test_order_without_notes_skips_notes_envelope(order_encryption, order):
    order.notes = None
    encrypted = order_encryption.encrypt_order_data(order)

    assert encrypted.encrypted_notes is None
    assert 'notes' not in order_encryption.decrypt_order_data(encrypted)


def test_tampered_order_data_fails(order_encryption, order):
    encrypted = order_encryption.encrypt_order_data(order)
    metadata = encrypted.encrypted_metadata
    digit = '0' if metadata.tag[0] != '0' else '1'
    encrypted.encrypted_metadata = type(metadata)(
        metadata.encrypted_data, metadata.encrypted_key, metadata.iv, digit + metadata.tag[1:]
    )

    with pytest.raises(DecryptionError):
        order_encryption.decrypt_order_data(encrypted)


@pytest.mark.parametrize('encrypt_name,decrypt_name', [
    ('encrypt_creation_data', 'decrypt_creation_data'),
    ('encrypt_update_data', 'decrypt_update_data'),
    ('encrypt_search_filters', 'decrypt_search_filters'),
    ('encrypt_statistics', 'decrypt_statistics'),
])
def test_payloads_carry_timestamp(order_encryption, encrypt_name, decrypt_name):
    payload = {'status': 'confirmed', 'page': 1}

    sealed = getattr(order_encryption, encrypt_name)(payload)
    opened = getattr(order_encryption, decrypt_name)(sealed)

    assert opened['status'] == 'confirmed'
    assert opened['page'] == 1
    assert 'timestamp' in opened


def test_statistics_with_decimals(order_encryption, order_service, order):
    sealed = order_encryption.encrypt_statistics(order_service.get_statistics())
    opened = order_encryption.decrypt_statistics(sealed)
    assert opened['total_sales'] == '299.98'
    assert opened['average_order'] == '299.98'

    nested = order_encryption.encrypt_statistics({'by_month': [{'sales': Decimal('10.50')}]})
    assert order_encryption.decrypt_statistics(nested)['by_month'] == [{'sales': '10.50'}]


def test_payload_must_be_object(order_encryption):
    with pytest.raises(ValidationError):
        order_encryption.encrypt_creation_data(['no', 'es', 'objeto'])


def test_encryption_audit_log(order_encryption, audit_service, rsa_keys, encryption_service, order):
    _, private_pem = rsa_keys
    sealed = order_encryption.generate_encryption_audit_log('encrypt_order_data', order.id, 1)

    entry = encryption_service.decrypt_json(sealed, private_pem)
    assert entry['operation'] == 'encrypt_order_data'
    assert entry['orderId'] == order.id
    assert entry['action'] == 'encryption_operation'

    logged = audit_service.get_logs_by_type('CIFRADO')
    assert len(logged) == 1
    assert logged[0]['related_id'] == str(order.id)


def test_verify_encryption_integrity(order_encryption, encryption_service, rsa_keys, other_rsa_keys):
    public_pem, _ = rsa_keys
    sealed = encryption_service.encrypt('total=299.98', public_pem)
    expected = encryption_service.hash_data('total=299.98')

    assert order_encryption.verify_encryption_integrity(sealed) is True
    assert order_encryption.verify_encryption_integrity(sealed, expected) is True
    assert order_encryption.verify_encryption_integrity(sealed, expected.upper()) is True
    assert order_encryption.verify_encryption_integrity(sealed, 'ab' * 32) is False

    foreign = encryption_service.encrypt('total=299.98', other_rsa_keys[0])
    assert order_encryption.verify_encryption_integrity(foreign) is False
    assert order_encryption.verify_encryption_integrity({'encryptedData': 'xx'}) is False
