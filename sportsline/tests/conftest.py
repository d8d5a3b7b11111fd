import pytest
from werkzeug.security import generate_password_hash

from sportsline.config import Settings
from sportsline.models import Customer, Product, User, UserRole
from sportsline.repositories import (
    AuditRepository,
    CustomerRepository,
    OrderRepository,
    ProductRepository,
    UserRepository,
)
from sportsline.services import (
    AuditService,
    HybridEncryptionService,
    InventoryService,
    OrderService,
)

TEST_JWT_SECRET = 'test-secret-key-for-sportsline-tests-0123456789'


@pytest.fixture(scope='session')
def encryption_service():
    return HybridEncryptionService()


@pytest.fixture(scope='session')
def rsa_keys(encryption_service):
    # RSA generation is slow, one pair for the whole run
    return encryption_service.generate_rsa_key_pair()


@pytest.fixture(scope='session')
def other_rsa_keys(encryption_service):
    return encryption_service.generate_rsa_key_pair()


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / 'data')


@pytest.fixture
def product_repo(data_dir):
    repo = ProductRepository(data_dir)
    repo.create(Product(id=1, code='BAL-001', name='Balón', price='89.99', stock=50, category='futbol'))
    repo.create(Product(id=2, code='CAM-001', name='Camiseta', price='120.00', stock=30, category='ropa'))
    return repo


@pytest.fixture
def customer_repo(data_dir):
    repo = CustomerRepository(data_dir)
    repo.create(Customer(id=1, name='Ana Pérez', email='ana@example.com', document='1001'))
    repo.create(Customer(id=2, name='Luis Gómez', email='luis@example.com', document='1002', active=False))
    return repo


@pytest.fixture
def user_repo(data_dir):
    repo = UserRepository(data_dir)
    repo.create(User(
        id=0,
        name='Vendedor Uno',
        email='vendedor@sportsline.com',
        password_hash=generate_password_hash('secreto123'),
        role=UserRole.VENDEDOR,
    ))
    return repo


@pytest.fixture
def order_repo(data_dir):
    return OrderRepository(data_dir)


@pytest.fixture
def audit_repo(data_dir):
    return AuditRepository(data_dir)


@pytest.fixture
def audit_service(audit_repo):
    return AuditService(audit_repo)


@pytest.fixture
def order_service(order_repo, product_repo, customer_repo, user_repo, audit_service):
    return OrderService(order_repo, product_repo, customer_repo, user_repo, audit_service)


@pytest.fixture
def inventory_service(product_repo, audit_service):
    return InventoryService(product_repo, audit_service)


@pytest.fixture
def settings(data_dir, rsa_keys):
    public_pem, private_pem = rsa_keys
    return Settings(
        data_dir=data_dir,
        jwt_secret=TEST_JWT_SECRET,
        rsa_public_key=public_pem,
        rsa_private_key=private_pem,
        rate_limit_max=1000,
        rate_limit_window=60,
    )
