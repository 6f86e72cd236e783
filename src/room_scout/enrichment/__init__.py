"""Address normalization, geocoding and travel time estimation."""

from room_scout.enrichment.address import build_complete_address
from room_scout.enrichment.maps_client import GoogleMapsClient
from room_scout.enrichment.service import MapsBackend, TransportEnricher

__all__ = ["GoogleMapsClient", "MapsBackend", "TransportEnricher", "build_complete_address"]
