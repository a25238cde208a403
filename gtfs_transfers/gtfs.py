import itertools as it, operator as op, functools as ft
from collections import namedtuple, defaultdict
from pathlib import Path
import os, io, csv, zipfile, contextlib

from . import utils as u, types as t


log = u.get_logger('gtfs')


class GTFSError(Exception): pass


@u.attr_struct(vals_to_attrs=True)
class GTFSConf:

	# Used for trips without direction_id value.
	# Feeds with only one direction for all routes can leave it empty,
	#  but for anything else it is better to infer/add these before loading.
	direction_default = 0


@contextlib.contextmanager
def gtfs_source(gtfs_path):
	'Open GTFS directory or zip file as a source for iter_gtfs_tuples().'
	gtfs_path = Path(gtfs_path)
	if gtfs_path.is_dir():
		yield gtfs_path
		return
	if not zipfile.is_zipfile(str(gtfs_path)):
		raise GTFSError('GTFS path is neither directory nor zip file: {}'.format(gtfs_path))
	with zipfile.ZipFile(str(gtfs_path)) as src: yield src

def _open_gtfs_file(gtfs_src, filename):
	if isinstance(gtfs_src, zipfile.ZipFile):
		for name in gtfs_src.namelist(): # files can also be in some subdir
			if os.path.basename(name) == filename:
				return io.TextIOWrapper(gtfs_src.open(name), encoding='utf-8-sig')
		return
	p = gtfs_src / filename
	if not os.access(str(p), os.R_OK): return
	return p.open(encoding='utf-8-sig')

def iter_gtfs_tuples(gtfs_src, filename, empty_if_missing=False, yield_fields=False):
	log.debug('Processing gtfs file: {}', filename)
	if filename.endswith('.txt'): filename = filename[:-4]
	tuple_t = ''.join(' '.join(filename.rstrip('s').split('_')).title().split())
	src = _open_gtfs_file(gtfs_src, '{}.txt'.format(filename))
	if not src:
		if not empty_if_missing:
			raise GTFSError('Required GTFS file is missing: {}.txt'.format(filename))
		if yield_fields: yield list()
		return
	with src:
		src_csv = csv.reader(src)
		fields = list(v.strip() for v in next(src_csv, list()))
		tuple_t = namedtuple(tuple_t, fields)
		if yield_fields: yield fields
		for line in src_csv:
			if not line: continue
			try: yield tuple_t(*line)
			except TypeError:
				log.debug('Skipping bogus CSV line (file: {}): {!r}', filename, line)


def parse_timetable(gtfs_path, conf=None):
	'''Parse Timetable from GTFS data directory or zip file.
		Calendar data is not used - all trips in the feed are
			treated as running on the same (single) representative day.'''
	if not conf: conf = GTFSConf()
	stops, routes, trips = t.public.Stops(), t.public.Routes(), t.public.Trips()

	with gtfs_source(gtfs_path) as gtfs_src:

		for s in iter_gtfs_tuples(gtfs_src, 'stops'):
			stops.add(t.public.Stop(s.stop_id, s.stop_name, float(s.stop_lon), float(s.stop_lat)))

		for s in iter_gtfs_tuples(gtfs_src, 'routes'):
			routes.add(t.public.Route( s.route_id,
				getattr(s, 'route_short_name', ''), getattr(s, 'route_long_name', ''),
				int(getattr(s, 'route_type', None) or 3) ))

		trip_stops = defaultdict(list)
		for s in iter_gtfs_tuples(gtfs_src, 'stop_times'): trip_stops[s.trip_id].append(s)

		dir_default_count, ts_untimed_count = 0, 0
		for s in iter_gtfs_tuples(gtfs_src, 'trips'):
			route = routes.get(s.route_id)
			if not route:
				raise GTFSError('Trip {!r} references unknown route: {!r}'.format(s.trip_id, s.route_id))
			direction_id = getattr(s, 'direction_id', '').strip()
			if not direction_id:
				direction_id, dir_default_count = conf.direction_default, dir_default_count + 1
			trip = t.public.Trip(s.trip_id, route, t.public.Direction.from_gtfs(direction_id))

			for ts in trip_stops.pop(s.trip_id, list()):
				stop = stops.get(ts.stop_id)
				if not stop:
					raise GTFSError('Trip {!r} stop_time references'
						' unknown stop: {!r}'.format(s.trip_id, ts.stop_id))
				dts_arr, dts_dep = (
					(u.dts_parse(v) if v.strip() else None)
					for v in [ts.arrival_time, ts.departure_time] )
				# Non-timepoint stops without any times are kept for stop sequences and transfers
				if dts_arr is None and dts_dep is None: ts_untimed_count += 1
				elif dts_arr is None: dts_arr = dts_dep
				elif dts_dep is None: dts_dep = dts_arr
				trip.add(t.public.TripStop(trip, stop, int(ts.stop_sequence), dts_arr, dts_dep))

			if not trip:
				log.debug('Skipping trip without stop times: {}', s.trip_id)
				continue
			trips.add(trip)

	if trip_stops:
		raise GTFSError( 'stop_times reference unknown'
			' trip(s): {}'.format(', '.join(sorted(trip_stops)[:5])) )
	if dir_default_count:
		log.info( 'Used default direction_id={} for {:,}'
			' trip(s) without one', conf.direction_default, dir_default_count )
	if ts_untimed_count:
		log.info( 'Loaded {:,} stop_times entries without arrival/departure times'
			' (only used for stop sequences, not transfer times)', ts_untimed_count )

	return t.public.Timetable(stops, routes, trips)
