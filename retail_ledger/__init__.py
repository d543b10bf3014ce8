"""
retail_ledger - Single-Owner Retail Ledger

A store where one owner lists products and registered customers buy them
for cash or on credit, with per-country spend totals and debt settlement.

Usage:
    from retail_ledger import Store

    store = Store("corner_shop", owner="owner")
    store.add_product("owner", "Widget", "A widget", 10, 5)

    store.register("ana", 1, "Ana", "CO")
    store.fund("ana", 10)
    store.purchase("ana", "Widget", 10)

    store.credit_purchase("ana", "Widget")   # debt = 10
    store.fund("ana", 10)
    store.pay_credit("ana", 10)              # debt = 0

    store.purchases_by_country("owner", "CO")   # 20
"""

# Core types
from .core import (
    StoreView,
    Product,
    Customer,
    Transfer,
    RecordChange,
    PendingOperation,
    Operation,
    build_operation,
    ExecuteResult,
    CatalogWrite,
    Notification,
    PurchaseEvent,
    CreditPaymentEvent,
    DestroyedEvent,
    LedgerError,
    Unauthorized,
    DuplicateId,
    AlreadyRegistered,
    NotRegistered,
    OutstandingDebt,
    OutOfStock,
    WrongPaymentAmount,
    NotFound,
    SystemDestroyed,
    InsufficientFunds,
    NegativePrice,
    StaleState,
    SubscriberError,
    SYSTEM_WALLET,
    STORE_WALLET,
    DEFAULT_UNIT_SCALE,
    WEI_PER_ETHER,
    DESTROY_THRESHOLD,
    LOYALTY_SPEND_THRESHOLD,
    LOYALTY_DISCOUNT,
    METHOD_CASH,
    METHOD_CREDIT,
)

# Store
from .store import Store

# Owner gate
from .access import is_owner, require_owner

# Catalog
from .catalog import (
    compute_add_product,
    get_product,
    find_product,
    price_of,
    stock_decrement,
)

# Customers
from .customers import (
    compute_registration,
    get_customer,
    is_registered,
    require_registered,
    require_no_debt,
)

# Purchases
from .purchases import (
    compute_purchase,
    compute_credit_purchase,
    compute_credit_payment,
)

# Lifecycle
from .lifecycle import compute_destroy_attempt

__all__ = [
    # Core
    'StoreView', 'Product', 'Customer', 'Transfer', 'RecordChange',
    'PendingOperation', 'Operation', 'build_operation',
    'ExecuteResult', 'CatalogWrite',
    'Notification', 'PurchaseEvent', 'CreditPaymentEvent', 'DestroyedEvent',
    'LedgerError', 'Unauthorized', 'DuplicateId', 'AlreadyRegistered',
    'NotRegistered', 'OutstandingDebt', 'OutOfStock', 'WrongPaymentAmount',
    'NotFound', 'SystemDestroyed', 'InsufficientFunds', 'NegativePrice', 'StaleState',
    'SubscriberError',
    'SYSTEM_WALLET', 'STORE_WALLET', 'DEFAULT_UNIT_SCALE', 'WEI_PER_ETHER',
    'DESTROY_THRESHOLD', 'LOYALTY_SPEND_THRESHOLD', 'LOYALTY_DISCOUNT',
    'METHOD_CASH', 'METHOD_CREDIT',
    # Store
    'Store',
    # Owner gate
    'is_owner', 'require_owner',
    # Catalog
    'compute_add_product', 'get_product', 'find_product', 'price_of', 'stock_decrement',
    # Customers
    'compute_registration', 'get_customer', 'is_registered',
    'require_registered', 'require_no_debt',
    # Purchases
    'compute_purchase', 'compute_credit_purchase', 'compute_credit_payment',
    # Lifecycle
    'compute_destroy_attempt',
]

__version__ = '1.0.0'
