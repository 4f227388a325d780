"""Geohash encoding of coordinates into base-32 cell identifiers."""

_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"


def encode_geohash(lat: float, lon: float, precision: int = 12) -> str:
    """
    Encode a coordinate as a geohash string.

    Bits alternate between longitude and latitude, starting with longitude,
    and every 5 bits map to one base-32 character. Shorter hashes describe
    larger cells, and a hash is always a prefix of its finer-precision hashes.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees
        precision: Number of characters in the result

    Returns:
        Geohash string of the given length
    """
    lat_min, lat_max = -90.0, 90.0
    lon_min, lon_max = -180.0, 180.0

    chars = []
    bits = 0
    bit_count = 0
    even = True

    while len(chars) < precision:
        if even:
            mid = (lon_min + lon_max) / 2
            if lon > mid:
                bits = (bits << 1) | 1
                lon_min = mid
            else:
                bits <<= 1
                lon_max = mid
        else:
            mid = (lat_min + lat_max) / 2
            if lat > mid:
                bits = (bits << 1) | 1
                lat_min = mid
            else:
                bits <<= 1
                lat_max = mid

        even = not even
        bit_count += 1
        if bit_count == 5:
            chars.append(_BASE32[bits])
            bits = 0
            bit_count = 0

    return "".join(chars)
