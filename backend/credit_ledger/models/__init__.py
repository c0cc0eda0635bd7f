from .customers import Customer
from .inventory import Product
from .sales import Sale, SaleItem, PaymentTransaction
from .installments import Installment

__all__ = [
    'Customer',
    'Product',
    'Sale', 'SaleItem', 'PaymentTransaction',
    'Installment',
]
