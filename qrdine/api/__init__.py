"""
                        API Routers

One APIRouter per area, registered by qrdine.main:
    - restaurants: Signup, settings, publishing
    - menu: Menu CRUD and Excel import/template
    - tables: Tables and their QR scan URLs
    - public: Customer-facing menu and table lookups
    - orders: Ordering, status transitions, added batches
    - kitchen: Kitchen display feed
    - analytics: Dashboard and reports
"""
