# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================
# Encapsula todo el acceso a clientes.json
# ==============================================================================

from typing import Any, Dict, List, Optional

from sportsline.errors import ValidationError
from sportsline.models import Customer, DocumentType

from .base import DictRepository


class CustomerRepository(DictRepository):
    """
    Repositorio de clientes.

    Formato de datos en clientes.json:
    {
        "1": {"id": 1, "name": "Ana", "email": "ana@mail.com",
              "document": "1020", "document_type": "cedula", "active": true}
    }
    """

    file_name = 'clientes.json'

    def get(self, customer_id: int) -> Optional[Customer]:
        data = self.get_by_id(customer_id)
        return Customer.from_dict(data) if data else None

    def list_customers(self) -> List[Customer]:
        return sorted(
            (Customer.from_dict(c) for c in self.get_all().values()),
            key=lambda c: c.id
        )

    def find_by_document(self, document: str) -> Optional[Customer]:
        for data in self.get_all().values():
            if data.get('document') == document:
                return Customer.from_dict(data)
        return None

    def find_by_email(self, email: str) -> Optional[Customer]:
        """Busca un cliente por email (sin distinguir mayúsculas)."""
        wanted = (email or '').strip().lower()
        for data in self.get_all().values():
            if data.get('email', '').lower() == wanted:
                return Customer.from_dict(data)
        return None

    def create(self, customer: Customer) -> Customer:
        """
        Crea un cliente. El documento y el email son únicos.

        Raises:
            ValidationError: Si el documento o el email ya están registrados
        """
        with self._file_lock:
            for data in self.get_all().values():
                if data.get('document') == customer.document:
                    raise ValidationError(f'El documento {customer.document} ya está registrado')
                if data.get('email', '').lower() == customer.email.lower():
                    raise ValidationError(f'El email {customer.email} ya está registrado')
            if not customer.id:
                customer.id = self.next_id()
            self.update(customer.id, customer.to_dict())
        return customer

    def save(self, customer: Customer) -> Customer:
        self.update(customer.id, customer.to_dict())
        return customer

    def get_statistics(self) -> Dict[str, Any]:
        """
        Resumen de clientes.

        Returns:
            {total, active, inactive, document_types}
            document_types cuenta clientes activos por tipo de documento
            (todos los tipos presentes, incluso en 0).
        """
        customers = self.list_customers()
        document_types = {doc_type.value: 0 for doc_type in DocumentType}
        active = 0
        for customer in customers:
            if customer.active:
                active += 1
                document_types[customer.document_type.value] += 1
        return {
            'total': len(customers),
            'active': active,
            'inactive': len(customers) - active,
            'document_types': document_types,
        }
