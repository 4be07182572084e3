"""Remote service clients (geocoding, routing) and their HTTP session."""

from .geocoding import GeocodingClient  # noqa: F401
from .routing import RoutingClient, straight_line_route  # noqa: F401
from .session import create_default_session, get_default_session  # noqa: F401
