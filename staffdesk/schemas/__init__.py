# StaffDesk - Schemas
# Request payload documents and API input/output models
