from mascote.models.client import Client
from mascote.models.order import OrderRecord, OrderStatus, REQUIRED_ORDER_FIELDS
