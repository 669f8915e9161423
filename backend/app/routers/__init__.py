# API Routers
from app.routers import (
    guest_auth, staff_auth, profile, staff, laundry, rooms, bookings, dining,
    inventory, payments, dashboard, halls, events, guests, services
)

__all__ = [
    'guest_auth', 'staff_auth', 'profile', 'staff', 'laundry', 'rooms', 'bookings',
    'dining', 'inventory', 'payments', 'dashboard', 'halls', 'events', 'guests', 'services'
]
