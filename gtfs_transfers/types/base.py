### TransferExtractor internal types - schedule index

import itertools as it, operator as op, functools as ft
from collections import defaultdict

from .. import utils as u


class TimetableError(Exception): pass


class ScheduleIndex:
	'''Read-only lookup tables built from Timetable in one pass:
			trips by route-direction, route-directions by stop and
			stop-visits of each trip, ordered by their stop_sequence values.
		Index never changes after build(), so can be queried from any number of threads.'''

	def __init__(self, trips_by_rd, rds_by_stop, stop_times_by_trip):
		self._trips_by_rd = trips_by_rd
		self._rds_by_stop = rds_by_stop
		self._stop_times = stop_times_by_trip

	@classmethod
	def build(cls, timetable):
		trips_by_rd, rds_by_stop, stop_times = defaultdict(list), defaultdict(set), dict()
		for trip in timetable.trips:
			rd = trip.route_direction
			trips_by_rd[rd].append(trip)
			# Order by sequence number only, as times can be duplicate or out-of-order
			ts_list = tuple(sorted(trip, key=op.attrgetter('seq')))
			for ts in ts_list:
				if ts.stop not in timetable.stops:
					raise TimetableError('Trip stop not in the timetable', ts)
				rds_by_stop[ts.stop].add(rd)
			stop_times[trip.id] = ts_list
		return cls(
			dict( (rd, tuple(sorted(trips, key=op.attrgetter('id'))))
				for rd, trips in trips_by_rd.items() ),
			dict((stop, frozenset(rds)) for stop, rds in rds_by_stop.items()),
			stop_times )

	def trips_for(self, rd):
		'All Trips for RouteDirection, empty tuple if there are none.'
		return self._trips_by_rd.get(rd, tuple())

	def route_directions_with_stop(self, stop):
		return self._rds_by_stop.get(stop, frozenset())

	def route_directions(self):
		return sorted(self._trips_by_rd, key=op.attrgetter('sort_key'))

	def stop_times(self, trip):
		'Stop-visits (TripStops) of a trip, ordered by stop_sequence.'
		return self._stop_times[getattr(trip, 'id', trip)]

	def stat_counts(self):
		return len(self._trips_by_rd), len(self._rds_by_stop), len(self._stop_times)

	def __contains__(self, rd): return rd in self._trips_by_rd
