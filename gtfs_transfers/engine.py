import itertools as it, operator as op, functools as ft
from collections import defaultdict, Counter
import math

from . import utils as u, types as t, geo, stats


@u.attr_struct(vals_to_attrs=True)
class EngineConf:
	transfer_time_min = 2*60 # time to get off the vehicle, find the stop, etc
	transfer_time_max = 90*60 # longer waits are not considered to be transfers
	walk_speed = 1.0 # m/s, a bit slow, as distances are as-the-crow-flies
	transfer_radius = 100 # meters, default search radius for transfer stops
	window = None # (dts_start, dts_end) for arrivals considered in stats, None for whole day
	trunk_filter = False # keep first/last transfer of a shared trunk instead of single best one
	log_progress_steps = 50 # transfers between progress messages in annotate_transfers()


TimetableError = t.base.TimetableError


def stop_order_votes(stop_seqs, stop_a, stop_b):
	'''Compare order of two stops in a list of weighted ({stop_id: position}, count) tuples.
		Every stop sequence with both stops in it votes for their order there.
		Returns (votes for b before a) - (votes for a before b),
			i.e. negative value when stop_a generally comes first.'''
	if stop_a == stop_b: return 0
	votes = 0
	for pos, count in stop_seqs:
		n_a, n_b = pos.get(stop_a.id), pos.get(stop_b.id)
		if n_a is None or n_b is None: continue
		votes += count if n_b < n_a else -count
	return votes

def stop_positions(stop_ids):
	'{stop_id: position} mapping for the first occurrence of each stop in a sequence.'
	pos = dict()
	for n, stop_id in enumerate(stop_ids): pos.setdefault(stop_id, n)
	return pos


def filter_trunks(transfers, stop_pos):
	'''Drop transfers on the inner stops of a "trunk" - run of 3 or more
			consecutive stops on the route-direction, where transfer to
			the same destination route-direction is available on every one of them.
		Only first and last transfers of such runs are kept, as it is
			the same transfer opportunity along the parallel-running routes.
		stop_pos is a {stop: index} mapping of a consensus stop order.'''
	by_rd = defaultdict(list)
	for transfer in transfers:
		by_rd[transfer.rd_to].append((stop_pos[transfer.stop_from], transfer))
	filtered = list()
	for rd, pos_transfers in by_rd.items():
		pos_transfers.sort(key=op.itemgetter(0))
		run = list()
		for n, transfer in it.chain(pos_transfers, [(None, None)]):
			if run and (n is None or n != run[-1][0] + 1):
				filtered.extend(v[1] for v in ([run[0], run[-1]] if len(run) >= 3 else run))
				run = list()
			run.append((n, transfer))
	return filtered


class TransferExtractor:

	def __init__(self, timetable, conf=None, timer_func=None):
		'''Indexes timetable data for transfer queries.
			All indexes are read-only after this, so queries do not change any shared state.'''
		self.conf, self.log = conf or EngineConf(), u.get_logger('transfers')
		self.timer_wrapper = timer_func if timer_func else lambda f,*a,**k: f(*a,**k)
		self.timetable = timetable

		self.log.debug('Spatially indexing stops')
		self.stop_index = self.timer_wrapper(geo.StopIndex.build, timetable.stops)
		self.log.debug('Indexing trips and route-directions')
		self.schedule = self.timer_wrapper(t.base.ScheduleIndex.build, timetable)
		self.log.debug( 'Done indexing: route-directions={:,}, stops={:,}, trips={:,}',
			*self.schedule.stat_counts() )

	@u.coroutine
	def progress_iter(self, prefix, n_max, steps=None, n=0):
		'Progress logging helper coroutine for long calculations.'
		if not steps: steps = self.conf.log_progress_steps
		while True:
			msg = yield
			n += 1
			if steps and n % steps == 0:
				self.log.debug('[{}] Processed {:,} / {:,}{}', prefix, n, n_max, msg and ': {}'.format(msg) or '')


	def route_direction(self, route_id, direction_id):
		'Return RouteDirection for GTFS route_id/direction_id, or None for unknown route.'
		if direction_id not in (0, 1, '0', '1'):
			raise ValueError('Direction must be 0 or 1, not {!r}'.format(direction_id))
		route = self.timetable.routes.get(route_id)
		if not route: return None
		return t.public.RouteDirection(route, t.public.Direction.from_gtfs(direction_id))

	def route_directions(self):
		'All route-directions that have any trips, in route id / direction order.'
		return self.schedule.route_directions()

	def route_direction_name(self, rd):
		'Human-readable name for route-direction - name of the last stop on one of its trips.'
		trips = self.schedule.trips_for(rd)
		if not trips: return None
		ts_list = self.schedule.stop_times(trips[0])
		return ts_list[-1].stop.name if ts_list else None


	def stops_for_route_direction(self, rd):
		'''Get stops for a route-direction, more or less in order.
			"More or less" because trips of a route-direction
				do not always visit exactly same stops in the same order.
			Order is a result of pairwise "which stop comes first in
				more trips" comparisons, so might look weird for branching routes.'''
		stops, seq_counts = dict(), Counter()
		for trip in self.schedule.trips_for(rd):
			ts_list = self.schedule.stop_times(trip)
			for ts in ts_list: stops[ts.stop.id] = ts.stop
			seq_counts[tuple(ts.stop.id for ts in ts_list)] += 1
		# Trips with same stop sequence all vote the same way, hence the counts
		stop_seqs = list((stop_positions(seq), count) for seq, count in seq_counts.items())
		# Initial order by id is there to make sorting deterministic, for votes ties
		stops = sorted(stops.values(), key=op.attrgetter('id'))
		return sorted(stops, key=ft.cmp_to_key(ft.partial(stop_order_votes, stop_seqs)))

	def stops_near(self, lat, lon, radius):
		'Stops within radius (meters) of the point, as (distance, stop) tuples.'
		return self.stop_index.stops_near(lat, lon, radius)


	def transfer_candidates(self, rd, radius=None, stops=None):
		'''Return list of best (closest) transfers from each
				stop of route-direction to each other route-direction,
				i.e. at most one transfer for each (source stop, destination) pair.
			Other direction of the same route is never considered for transfers.'''
		if radius is None: radius = self.conf.transfer_radius
		if stops is None: stops = self.stops_for_route_direction(rd)
		candidates = list()
		for stop_from in stops:
			stop_best = dict() # {rd_to: transfer}
			for dist, stop_to in self.stops_near(stop_from.lat, stop_from.lon, radius):
				for rd_to in self.schedule.route_directions_with_stop(stop_to):
					if rd_to.route == rd.route: continue
					if rd_to in stop_best and stop_best[rd_to].distance <= dist: continue
					stop_best[rd_to] = t.public.Transfer.create(stop_from, stop_to, rd, rd_to, dist)
			candidates.extend(stop_best.values())
		return candidates

	def find_transfers(self, rd, radius=None, trunk_filter=None):
		'''Get optimal transfers for a route-direction, ordered by their source stops.
			By default, only one best (closest) transfer to every other route-direction is returned.
			With trunk_filter, best transfer from every stop is considered instead,
				and only first and last of these is kept for trunks
				(consecutive stops with same transfer available, see filter_trunks).
			Unknown route-direction or no stops within radius produce empty list.'''
		if trunk_filter is None: trunk_filter = self.conf.trunk_filter
		stops = self.stops_for_route_direction(rd)
		stop_pos = dict((stop, n) for n, stop in enumerate(stops))
		candidates = self.transfer_candidates(rd, radius, stops)

		if trunk_filter: transfers = filter_trunks(candidates, stop_pos)
		else:
			best = dict() # candidates are in stop order, so earlier stop wins ties
			for transfer in candidates:
				if transfer.rd_to in best and best[transfer.rd_to].distance <= transfer.distance: continue
				best[transfer.rd_to] = transfer
			transfers = list(best.values())

		transfers.sort(key=lambda tr: (stop_pos[tr.stop_from], tr.rd_to.sort_key))
		self.log.debug( 'Found transfers from {} to {:,} route-directions'
			' (candidates: {:,}, trunk-filter: {})', rd, len(transfers), len(candidates), trunk_filter )
		return transfers


	def transfer_times(self, transfer, dts_start=None, dts_end=None):
		'''Get all TransferTimes for the given transfer in the timetable,
				ordered by time of arrival to the transfer stop_from.
			Only arrivals within dts_start/dts_end interval are considered, if specified.
			Stop-visits without times (non-timepoint stops) are ignored here.
			All service in the timetable is looked at as if it was a single day.'''
		if dts_start is None and dts_end is None and self.conf.window:
			dts_start, dts_end = self.conf.window
		arrivals, departures = list(), list()

		for trip in self.schedule.trips_for(transfer.rd_from):
			# Doesn't make sense to transfer from the first stop of a trip.
			# It is handled here and not when finding transfers, as
			#  some trips might start there, while others pass through it.
			for ts in self.schedule.stop_times(trip)[1:]:
				if ts.stop != transfer.stop_from or ts.dts_arr is None: continue
				if dts_start is not None and ts.dts_arr < dts_start: continue
				if dts_end is not None and ts.dts_arr > dts_end: continue
				arrivals.append(ts.dts_arr)

		for trip in self.schedule.trips_for(transfer.rd_to):
			# Same for transferring to the last stop of a trip
			for ts in self.schedule.stop_times(trip)[:-1]:
				if ts.stop == transfer.stop_to and ts.dts_dep is not None: departures.append(ts.dts_dep)

		# Most likely either transfer from very start of the trips or to the very end
		if not (arrivals and departures): return list()
		arrivals.sort()
		departures.sort()

		# Skip arrivals before the last one preceding first departure,
		#  so that there are no long "transfers" to route that has not entered service yet
		n = 0
		while n + 1 < len(arrivals) and arrivals[n + 1] < departures[0]: n += 1

		dt_walk = self.conf.transfer_time_min\
			+ math.ceil(transfer.distance / self.conf.walk_speed)
		times, dep_iter = list(), iter(departures)
		dts_dep = next(dep_iter) # same departure can be used for multiple arrivals
		for dts_arr in arrivals[n:]:
			dts_dep_min = dts_arr + dt_walk
			try:
				while dts_dep < dts_dep_min: dts_dep = next(dep_iter)
			except StopIteration: break # no departures left for this or any later arrivals
			delta = dts_dep - dts_arr
			if delta <= self.conf.transfer_time_max:
				times.append(t.public.TransferTime(delta, dts_arr))
		return times

	def times(self, transfer, dts_start=None, dts_end=None):
		'Transfer time durations (seconds) for transfer, see transfer_times().'
		return list(map(op.attrgetter('delta'), self.transfer_times(transfer, dts_start, dts_end)))

	def add_distribution_to_transfer(self, transfer, dts_start=None, dts_end=None):
		'''Calculate transfer times and their stats, and set these on the transfer.
			Stats are left unset (None) if there are no transfer times.'''
		transfer.times = self.transfer_times(transfer, dts_start, dts_end)
		transfer.stats = stats.summarize(map(op.attrgetter('delta'), transfer.times))
		return transfer

	def annotate_transfers(self, transfers, dts_start=None, dts_end=None):
		progress = self.progress_iter('stats', len(transfers))
		for transfer in transfers:
			self.add_distribution_to_transfer(transfer, dts_start, dts_end)
			progress.send(transfer.rd_to)
		return transfers
