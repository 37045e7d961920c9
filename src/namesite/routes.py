"""
Route table for namesite.

Order matters: bindings are tried first to last, and "/*" catches every
GET not matched above it. POST /setName comes after the wildcard and is
still reachable because the wildcard is bound to GET only.
"""

from .controllers import Controllers
from .http import Router


def install_routes(router: Router, controllers: Controllers) -> Router:
    """Register the application's routes on router, in order."""
    router.get("/page1")(controllers.page1)
    router.get("/page2")(controllers.page2)
    router.get("/getName")(controllers.get_name)
    router.get("/")(controllers.index)
    router.get("/*")(controllers.not_found)
    router.post("/setName")(controllers.set_name)
    return router
