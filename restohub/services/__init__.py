"""
Service Layer

Business logic behind the routes. Each module takes an AsyncSession and a
tenant id; none of them know about HTTP.

    rate_limit    - token-bucket stores (memory / redis)
    tenant_config - cached per-tenant settings
    cart          - cart aggregate and checkout
    orders        - listing and the status workflow
    menus         - catalogue reads and admin writes
    tenants       - public tenant lookup and platform lifecycle
    audit         - best-effort audit log
    payment       - payment provider stub
"""
