import itertools as it, operator as op, functools as ft
from collections import namedtuple
import enum

from .. import utils as u, geo


### TransferExtractor input data

# Static schedule - stops, routes and trips with per-trip stop-visit times.
# Whole timetable is treated as one representative day.


@u.attr_struct(repr=False, eq=False)
class Stop:
	keys = 'id name lon lat'
	def __hash__(self): return hash(self.id)
	def __eq__(self, stop): return u.same_type_and_id(self, stop)
	def __repr__(self):
		if self.id == self.name: return '<Stop {}>'.format(self.id)
		return '<Stop {} [{}]>'.format(self.name, self.id)

class Stops:
	def __init__(self): self.set_idx = dict()

	def add(self, stop):
		if stop.id in self.set_idx: stop = self.set_idx[stop.id]
		else: self.set_idx[stop.id] = stop
		return stop

	def get(self, stop):
		if isinstance(stop, Stop): stop = stop.id
		return self.set_idx.get(stop)

	def __getitem__(self, stop_id): return self.set_idx[stop_id]
	def __contains__(self, stop): return self.get(stop) is not None
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx.values())


@u.attr_struct(repr=False, eq=False)
class Route:
	id = u.attr_init()
	short_name = u.attr_init('')
	long_name = u.attr_init('')
	type = u.attr_init(3) # GTFS route_type, 3 = bus
	def __hash__(self): return hash(self.id)
	def __eq__(self, route): return u.same_type_and_id(self, route)
	def __repr__(self): return '<Route {}>'.format(self.id)

	@property
	def name(self):
		return ' '.join(filter(None, [self.short_name, self.long_name])) or self.id

class Routes:
	def __init__(self): self.set_idx = dict()

	def add(self, route):
		if route.id in self.set_idx: route = self.set_idx[route.id]
		else: self.set_idx[route.id] = route
		return route

	def get(self, route_id): return self.set_idx.get(route_id)
	def __getitem__(self, route_id): return self.set_idx[route_id]
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx.values())


class Direction(enum.Enum):
	'''Two agency-specific directions of a route (inbound/outbound, clockwise, uphill, etc).
		Defined by GTFS direction_id flag, both values are only meaningful within one route.'''
	d0, d1 = 0, 1

	@classmethod
	def from_gtfs(cls, direction_id):
		return cls.d0 if int(direction_id) == 0 else cls.d1

	def to_gtfs(self): return self.value

	@property
	def reverse(self): return Direction(1 - self.value)


@u.attr_struct(repr=False, eq=False)
class RouteDirection:
	keys = 'route direction'
	def __hash__(self): return hash((self.route.id, self.direction))
	def __eq__(self, rd):
		return isinstance(rd, RouteDirection)\
			and self.direction is rd.direction and self.route.id == rd.route.id
	def __repr__(self): return '<RouteDirection {}:{}>'.format(self.route.id, self.direction.value)

	@property
	def reverse(self): return RouteDirection(self.route, self.direction.reverse)

	@property
	def sort_key(self): return self.route.id, self.direction.value


@u.attr_struct(repr=False, eq=False)
class TripStop:
	trip = u.attr_init()
	stop = u.attr_init()
	seq = u.attr_init()
	dts_arr = u.attr_init()
	dts_dep = u.attr_init()

	def __hash__(self): return hash((self.trip.id, self.seq))
	def __eq__(self, ts):
		return isinstance(ts, TripStop) and self.trip.id == ts.trip.id and self.seq == ts.seq
	def __repr__(self): # mostly to avoid recursion
		return ( 'TripStop(trip_id={0.trip.id}, seq={0.seq},'
			' stop_id={0.stop.id}, dts_arr={0.dts_arr}, dts_dep={0.dts_dep})' ).format(self)

@u.attr_struct(repr=False, eq=False)
class Trip:
	'''Single vehicle run on a route.
		Stops are kept in the order they were added, which is not necessarily
			the visiting order - stop_sequence (TripStop.seq) is what defines it.'''
	id = u.attr_init()
	route = u.attr_init()
	direction = u.attr_init(Direction.d0)
	stops = u.attr_init(list)

	def add(self, stop): self.stops.append(stop)

	@property
	def route_direction(self): return RouteDirection(self.route, self.direction)

	def __hash__(self): return hash(self.id)
	def __eq__(self, trip): return u.same_type_and_id(self, trip)
	def __repr__(self):
		return 'Trip(id={0.id}, route={0.route.id}, direction={0.direction.value}, stops={1})'\
			.format(self, len(self.stops))

	def __getitem__(self, n): return self.stops[n]
	def __len__(self): return len(self.stops)
	def __iter__(self): return iter(self.stops)

class Trips:

	def __init__(self): self.set_idx = dict()

	def add(self, trip): self.set_idx[trip.id] = trip

	def stat_mean_stops(self):
		if not len(self): return 0
		return (sum(len(t) for t in self) / len(self))

	def get(self, trip_id): return self.set_idx.get(trip_id)
	def __getitem__(self, trip_id): return self.set_idx[trip_id]
	def __len__(self): return len(self.set_idx)
	def __iter__(self): return iter(self.set_idx.values())


@u.attr_struct
class Timetable:
	stops = u.attr_init(Stops)
	routes = u.attr_init(Routes)
	trips = u.attr_init(Trips)



### TransferExtractor results

TransferTime = namedtuple('TransferTime', 'delta dts_arr') # wait in seconds, arrival that triggered it
TransferStats = namedtuple('TransferStats', 'min p25 median p75 max n')

@u.attr_struct(slots=False, repr=False, eq=False)
class Transfer:
	'''Directed walking connection from stop on one route-direction to stop on another.
		distance (meters) is only calculated on creation.
		stats is None until distribution of transfer times is calculated for it,
			and stays None if there were no transfer opportunities found in the timetable.
		times is the list of TransferTime tuples that stats were calculated from.'''
	stop_from = u.attr_init()
	stop_to = u.attr_init()
	rd_from = u.attr_init()
	rd_to = u.attr_init()
	distance = u.attr_init()
	stats = u.attr_init(None)
	times = u.attr_init(None)

	@classmethod
	def create(cls, stop_from, stop_to, rd_from, rd_to, distance=None):
		if distance is None: distance = geo.stop_distance(stop_from, stop_to)
		return cls(stop_from, stop_to, rd_from, rd_to, distance)

	@property
	def has_stats(self): return self.stats is not None

	def __getattr__(self, k):
		if k in TransferStats._fields:
			return getattr(self.stats, k) if self.stats is not None else None
		raise AttributeError(k)

	def __hash__(self): return hash((self.stop_from, self.stop_to, self.rd_from, self.rd_to))
	def __eq__(self, transfer):
		return isinstance(transfer, Transfer) and all(
			getattr(self, k) == getattr(transfer, k)
			for k in ['stop_from', 'stop_to', 'rd_from', 'rd_to'] )
	def __repr__(self):
		return ( '<Transfer {0.rd_from!r} {0.stop_from.id} ->'
			' {0.rd_to!r} {0.stop_to.id} [{0.distance:,.1f}m]{1}>' ).format( self,
				' median={:,.0f}s n={}'.format(self.median, self.n) if self.has_stats else '' )
