# backend/classbook/routes/__init__.py
"""HTTP routers."""
