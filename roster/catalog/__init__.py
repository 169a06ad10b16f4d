"""
Catalog package for the roster API.

A catalog is an ordered list of records (artists or actors) stored as
one JSON document, plus the photos those records reference in a blob
store. ``CatalogService`` owns the read-modify-write cycles against the
document and keeps the blob store consistent with it;
``build_catalog_router`` exposes a service over HTTP.
"""

from .router import build_catalog_router  # noqa: F401
from .service import CatalogService  # noqa: F401
