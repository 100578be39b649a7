from .auth import User, UserRole, SessionToken
from .inventory import Material, FoodCondition
from .orders import Order, OrderItem, Invoice, InvoiceItem, Payment, Transaction
from .suppliers import SupplierHistory
from .quality import RejectedItem, ChatMessage, Return
from .documents import RecapDocument
from .workflow import WorkflowRun, WorkflowStep

__all__ = [
    'User', 'UserRole', 'SessionToken',
    'Material', 'FoodCondition',
    'Order', 'OrderItem', 'Invoice', 'InvoiceItem', 'Payment', 'Transaction',
    'SupplierHistory',
    'RejectedItem', 'ChatMessage', 'Return',
    'RecapDocument',
    'WorkflowRun', 'WorkflowStep',
]
