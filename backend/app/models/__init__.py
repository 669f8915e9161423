# Domain Models
from app.models.ontology import (
    Guest, Staff, Room, Booking, BookingRoom, Dish, Order, OrderDish,
    LaundryItem, LaundryBooking, LaundryBookingLine, Supplier, InventoryItem, Payment,
    Hall, Event, ServiceItem, ServiceRequest
)

__all__ = [
    'Guest', 'Staff', 'Room', 'Booking', 'BookingRoom', 'Dish', 'Order', 'OrderDish',
    'LaundryItem', 'LaundryBooking', 'LaundryBookingLine', 'Supplier', 'InventoryItem', 'Payment',
    'Hall', 'Event', 'ServiceItem', 'ServiceRequest'
]
