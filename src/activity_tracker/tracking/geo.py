"""Great-circle distance between GPS fixes."""

from haversine import Unit, haversine


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the distance between two points in meters."""
    return haversine((lat1, lon1), (lat2, lon2), unit=Unit.METERS)
