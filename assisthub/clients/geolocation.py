"""
Address geocoding through a Nominatim-compatible search endpoint.

The endpoint, timeout and User-Agent come from settings (GEOCODING_URL,
GEOCODING_TIMEOUT, GEOCODING_USER_AGENT).
"""
import logging
from collections import namedtuple

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

Location = namedtuple('Location', ['lat', 'lng'])


class GeolocationError(Exception):
    """Raised when an address cannot be resolved to coordinates"""


def get_geolocation(address):
    """
    Resolve ``address`` to a Location.

    Raises GeolocationError on an empty address, a transport error, a non-2xx
    response, an unparseable body or no results.
    """
    if not address or not address.strip():
        raise GeolocationError('Address is required')

    try:
        response = requests.get(
            settings.GEOCODING_URL,
            params={'q': address.strip(), 'format': 'json', 'limit': 1},
            headers={'User-Agent': settings.GEOCODING_USER_AGENT},
            timeout=settings.GEOCODING_TIMEOUT,
        )
        response.raise_for_status()
        results = response.json()
    except requests.RequestException as e:
        logger.warning(f"Geocoding request failed for '{address}': {e}")
        raise GeolocationError(f'Geocoding service unavailable: {e}') from e
    except ValueError as e:
        logger.warning(f"Geocoding returned an invalid body for '{address}': {e}")
        raise GeolocationError('Geocoding service returned an invalid response') from e

    if not results:
        raise GeolocationError(f"No location found for '{address}'")

    try:
        first = results[0]
        return Location(lat=float(first['lat']), lng=float(first['lon']))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise GeolocationError('Geocoding service returned an invalid response') from e


def build_map_link(location):
    return f'https://www.google.com/maps/search/?api=1&query={location.lat},{location.lng}'
