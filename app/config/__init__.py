# =============================================================================
# Django Project Configuration Package
# =============================================================================
# This package contains the Django configuration: settings, the root URLconf
# and the ASGI/WSGI entry points.
# =============================================================================
