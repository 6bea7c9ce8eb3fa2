# StaffDesk - Routes
# JSON API routers
