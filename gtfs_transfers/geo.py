### Geodesic distances and spatial index of stops

import itertools as it, operator as op, functools as ft
import math

from shapely import geometry
from shapely.strtree import STRtree
import pyproj

from . import utils as u


log = u.get_logger('transfers.geo')

geod = pyproj.Geod(ellps='WGS84')

# Shortest length of one degree of latitude on WGS84 (it is at the equator),
#  so that bounding box height is never smaller than the radius.
lat_deg_m = 110574
# Equatorial radius is the largest one, used for longitude degree length for the same reason.
earth_radius_eq_m = 6378137
# Boxes are expanded a bit, as points on the equator can be exactly on the edge otherwise
bbox_margin = 1.01


def distance(lat0, lon0, lat1, lon1):
	'Geodesic (WGS84 ellipsoid) distance between two points, in meters.'
	if lat0 == lat1 and lon0 == lon1: return 0.0
	az_fwd, az_back, dist = geod.inv(lon0, lat0, lon1, lat1)
	return dist

def stop_distance(stop_a, stop_b):
	return distance(stop_a.lat, stop_a.lon, stop_b.lat, stop_b.lon)


def bbox_degrees(lat, radius):
	'''Return (dlat, dlon) degree deltas to expand point by to cover radius (meters).
		Approximation errs on the side of selecting too much, never too little.
		dlon is None if box should cover all longitudes (close to poles).'''
	radius *= bbox_margin
	dlat = radius / lat_deg_m
	lon_circle_m = 2 * math.pi * earth_radius_eq_m * math.cos(math.radians(lat))
	dlon = radius * 360 / lon_circle_m if lon_circle_m > 0 else None
	if dlon is not None and dlon >= 180: dlon = None
	return dlat, dlon

def bbox_list(lat, lon, radius):
	'List of (min_lon, min_lat, max_lon, max_lat) boxes, split at the antimeridian if necessary.'
	dlat, dlon = bbox_degrees(lat, radius)
	lat_min, lat_max = max(-90, lat - dlat), min(90, lat + dlat)
	if lat_min == -90 or lat_max == 90: dlon = None # box includes the pole
	if dlon is None: return [(-180, lat_min, 180, lat_max)]
	lon_min, lon_max = lon - dlon, lon + dlon
	boxes = [(max(-180, lon_min), lat_min, min(180, lon_max), lat_max)]
	if lon_min < -180: boxes.append((lon_min + 360, lat_min, 180, lat_max))
	if lon_max > 180: boxes.append((-180, lat_min, lon_max - 360, lat_max))
	return boxes


class StopIndex:
	'''Spatial index of stops for radius queries.
		Bounding boxes are matched against STR-tree first, then filtered by exact distance.'''

	def __init__(self, stops, tree):
		self.stops, self.tree = stops, tree

	@classmethod
	def build(cls, stops):
		stops = tuple(sorted(stops, key=op.attrgetter('id')))
		tree = STRtree([geometry.Point(s.lon, s.lat) for s in stops]) if stops else None
		log.debug('Built spatial index for {:,} stops', len(stops))
		return cls(stops, tree)

	def candidates(self, lat, lon, radius):
		'Stops within bounding box(es) of the radius, unfiltered.'
		if not self.tree: return list()
		idx_set = set()
		for box in bbox_list(lat, lon, radius):
			idx_set.update(int(n) for n in self.tree.query(geometry.box(*box)))
		return list(self.stops[n] for n in sorted(idx_set))

	def stops_near(self, lat, lon, radius):
		'''Return (distance, stop) tuples for all stops within radius
			meters of the point, ordered by distance and stop id.'''
		results = list()
		for stop in self.candidates(lat, lon, radius):
			dist = distance(lat, lon, stop.lat, stop.lon)
			if dist <= radius: results.append((dist, stop))
		results.sort(key=lambda v: (v[0], v[1].id))
		return results

	def __len__(self): return len(self.stops)
