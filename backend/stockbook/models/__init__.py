from .inventory import StockItem
from .transactions import Sale, SaleLine, Debtor, DebtorLine
from .purchases import Purchase, PurchaseLine
from .customers import Customer, OtherExpense
from .documents import DocumentSequence, ChangeEvent

__all__ = [
    'StockItem',
    'Sale', 'SaleLine', 'Debtor', 'DebtorLine',
    'Purchase', 'PurchaseLine',
    'Customer', 'OtherExpense',
    'DocumentSequence', 'ChangeEvent',
]
