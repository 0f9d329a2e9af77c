# Services package init
"""
Botanica Backend — Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services accept domain objects, apply business logic, and return results.
       Routes call the module-level singletons (plant_service, inventory_service, ...).

Service Inventory:
    - stock: Derived stock status (available / low_stock / out_of_stock)
    - PlantService: Catalog queries and admin plant CRUD
    - CategoryService: Category listing and creation
    - InventoryService: Stock adjustments, ledger history and reports
    - ImageService: Upload validation, resize to JPEG, public URLs
    - StorageBackend (abstract) / LocalStorage: Object storage on disk
    - IdentityProvider (abstract) / GoogleIdentityProvider: OAuth sign-in
    - SessionContext: Signed session tokens and login state
    - AuthService: Admin rule and login callback outcome
    - error_mapping: Database errors → user-facing messages
"""
