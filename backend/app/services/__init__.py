# Business Services
from app.services.guest_service import GuestService
from app.services.guest_admin_service import GuestAdminService
from app.services.staff_service import StaffService
from app.services.laundry_service import LaundryService
from app.services.booking_service import RoomService, BookingService
from app.services.order_service import DishService, OrderService
from app.services.inventory_service import InventoryService, SupplierService
from app.services.payment_service import PaymentService, PaystackClient
from app.services.dashboard_service import DashboardService
from app.services.hall_service import HallService
from app.services.event_service import EventService
from app.services.service_request_service import ServiceCatalogService, ServiceRequestService

__all__ = [
    'GuestService', 'GuestAdminService', 'StaffService', 'LaundryService', 'RoomService',
    'BookingService', 'DishService', 'OrderService', 'InventoryService', 'SupplierService',
    'PaymentService', 'PaystackClient', 'DashboardService', 'HallService', 'EventService',
    'ServiceCatalogService', 'ServiceRequestService'
]
