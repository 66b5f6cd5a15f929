"""
auth — User authentication module.

Provides:
  • JWT session token creation & verification
  • Password hashing (bcrypt)
  • IdentityService: register / login / preferences
  • Register / Login / Me API routes
  • ``get_current_user`` FastAPI dependency
"""
