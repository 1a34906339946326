from .partners import Partner, Product, StockMovement, Delivery
from .accounting import Transaction, StandardOrder, PartnerDeliveryFee, Salary, BankDeposit
from .auth import Profile, UserPermission, SessionToken, Invitation
from .documents import Document
from .activity import ActivityLogEntry

__all__ = [
    'Partner', 'Product', 'StockMovement', 'Delivery',
    'Transaction', 'StandardOrder', 'PartnerDeliveryFee', 'Salary', 'BankDeposit',
    'Profile', 'UserPermission', 'SessionToken', 'Invitation',
    'Document',
    'ActivityLogEntry',
]
