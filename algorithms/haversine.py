"""
Haversine Algorithm - Calculate distance between two geographical points
Used to annotate blood requests with their distance from a donor
"""

import math

EARTH_RADIUS_KM = 6371


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate straight-line distance between two points.
    Note: This is "as the crow flies" distance, not road distance.

    Args:
        lat1, lon1: Latitude and longitude of point 1 (donor)
        lat2, lon2: Latitude and longitude of point 2 (request)

    Returns:
        Distance in kilometers
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return c * EARTH_RADIUS_KM


def sort_by_distance(origin_lat, origin_lon, items):
    """
    Annotate each item that has latitude/longitude with ``distance`` (km)
    and return the items nearest first; items without coordinates go last
    with ``distance = None``.
    """
    located = []
    unlocated = []

    for item in items:
        if item.latitude is not None and item.longitude is not None:
            item.distance = round(
                haversine_distance(origin_lat, origin_lon, item.latitude, item.longitude), 2
            )
            located.append(item)
        else:
            item.distance = None
            unlocated.append(item)

    located.sort(key=lambda x: x.distance)
    return located + unlocated
