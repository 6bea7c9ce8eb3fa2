# StaffDesk - Request & approval workflow for HR records

__version__ = "0.1.0"
