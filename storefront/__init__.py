"""Storefront backend: catalog, blog and account API.

To use the Flask app:
    from storefront.flask_app import create_app

To use the identity provider adapter:
    from storefront.core.identity import IdentityProvider
"""
# Note: flask_app is not imported here so scripts/manage.py can load the
# models and storage layer without building the whole application.
