# API Routers
from hrs.routers import auth, rooms, customer, chat, receptionist, manager, admin

__all__ = ['auth', 'rooms', 'customer', 'chat', 'receptionist', 'manager', 'admin']
