# Routes package init
"""
Botanica Backend — API Routes Package
=======================================

Route Inventory:
    - plants.py:  GET  /api/plants/featured, /api/plants, /api/plants/{id},
                  GET  /api/categories
    - auth.py:    GET  /api/admin/login, /api/admin/callback, /api/admin/me
                  POST /api/admin/logout
    - admin.py:   GET  /api/admin/dashboard, /api/admin/inventory
                  POST /api/admin/plants, /api/admin/categories
                  GET/PUT/DELETE /api/admin/plants/{id}
                  GET/POST /api/admin/plants/{id}/inventory
    - images.py:  POST/DELETE /api/admin/images
    - files.py:   GET  /api/files/{bucket}/{path}
    - health.py:  GET  /health

Routes are thin: they read the request, call a service, shape the response.
"""
