import itertools as it, operator as op, functools as ft
from collections import ChainMap, OrderedDict
from collections.abc import Mapping
from pathlib import Path
import os, sys, types, re

import yaml # PyYAML module is required for tests

path_project = Path(__file__).parent.parent
sys.path.insert(1, str(path_project))
import gtfs_transfers as gt

verbose = os.environ.get('GT_DEBUG')
if verbose:
	gt.u.logging.basicConfig(
		format='%(asctime)s :: %(name)s %(levelname)s :: %(message)s',
		datefmt='%Y-%m-%d %H:%M:%S', level=gt.u.logging.DEBUG )

path_gtfs_simple = path_project / 'test' / 'gtfs_simple'



class dmap(ChainMap):

	maps = None

	def __init__(self, *maps, **map0):
		maps = list((v if not isinstance( v,
			(types.GeneratorType, list, tuple) ) else OrderedDict(v)) for v in maps)
		if map0 or not maps: maps = [map0] + maps
		super(dmap, self).__init__(*maps)

	def __repr__(self):
		return '<{} {:x} {}>'.format(
			self.__class__.__name__, id(self), repr(self._asdict()) )

	def _asdict(self):
		items = dict()
		for k, v in self.items():
			if isinstance(v, self.__class__): v = v._asdict()
			items[k] = v
		return items

	def _set_attr(self, k, v):
		self.__dict__[k] = v

	def __iter__(self):
		key_set = dict.fromkeys(set().union(*self.maps), True)
		return filter(lambda k: key_set.pop(k, False), it.chain.from_iterable(self.maps))

	def __getitem__(self, k):
		k_maps = list()
		for m in self.maps:
			if k in m:
				if isinstance(m[k], Mapping): k_maps.append(m[k])
				elif not (m[k] is None and k_maps): return m[k]
		if not k_maps: raise KeyError(k)
		return self.__class__(*k_maps)

	def __getattr__(self, k):
		try: return self[k]
		except KeyError: raise AttributeError(k)

	def __setattr__(self, k, v):
		for m in map(op.attrgetter('__dict__'), [self] + self.__class__.mro()):
			if k in m:
				self._set_attr(k, v)
				break
		else: self[k] = v

	def __delitem__(self, k):
		for m in self.maps:
			if k in m: del m[k]


def yaml_load(stream, dict_cls=OrderedDict, loader_cls=yaml.SafeLoader):
	if not hasattr(yaml_load, '_cls'):
		class CustomLoader(loader_cls): pass
		def construct_mapping(loader, node):
			loader.flatten_mapping(node)
			return dict_cls(loader.construct_pairs(node))
		CustomLoader.add_constructor(
			yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, construct_mapping )
		# Do not auto-resolve dates/timestamps/sexagesimals, as PyYAML does that badly
		res_map = CustomLoader.yaml_implicit_resolvers = CustomLoader.yaml_implicit_resolvers.copy()
		res_int = list('-+0123456789')
		for c in res_int: del res_map[c]
		CustomLoader.add_implicit_resolver(
			'tag:yaml.org,2002:int',
			re.compile(r'''^(?:[-+]?0b[0-1_]+
				|[-+]?0[0-7_]+
				|[-+]?(?:0|[1-9][0-9_]*)
				|[-+]?0x[0-9a-fA-F_]+)$''', re.X), res_int )
		yaml_load._cls = CustomLoader
	return yaml.load(stream, yaml_load._cls)

def load_test_data(path_dir, path_stem, name):
	'Load test data from specified YAML file and return as dmap object.'
	with (path_dir / '{}.test.{}.yaml'.format(path_stem, name)).open() as src:
		return dmap(yaml_load(src))

def load_test_data_for(path_file, name):
	path_file = Path(path_file)
	return load_test_data(path_file.parent, path_file.stem, name)


def struct_from_val(val, cls, as_tuple=False):
	if isinstance(val, (tuple, list)): val = cls(*val)
	elif isinstance(val, (dmap, dict, OrderedDict)): val = cls(**val)
	else: raise ValueError(val)
	return val if not as_tuple else gt.u.attr.astuple(val)

@gt.u.attr_struct
class TestStop:
	lat = gt.u.attr_init()
	lon = gt.u.attr_init()
	name = gt.u.attr_init(None)

@gt.u.attr_struct
class TestTripStop:
	stop_id = gt.u.attr_init()
	dts_arr = gt.u.attr_init()
	dts_dep = gt.u.attr_init(None)
	seq = gt.u.attr_init(None)


def timetable_from_data(tt):
	'''Build Timetable from test-data mapping with "stops", "routes" and "trips" keys.
		Stops are "id: [lat, lon, name]", routes "id: long_name" and trips are
			"id: {route: ..., direction: 0|1, stops: [[stop_id, arr, dep, seq], ...]}".
		Empty or "x" arr/dep values are replaced by the other one,
			and seq defaults to 1-based index of the stop in the list.'''
	types = gt.t.public
	stops, routes, trips = types.Stops(), types.Routes(), types.Trips()

	for stop_id, stop_data in tt.stops.items():
		lat, lon, name = struct_from_val(stop_data, TestStop, as_tuple=True)
		stops.add(types.Stop(stop_id, name or stop_id, float(lon), float(lat)))
	for route_id, name in (tt.get('routes') or dict()).items():
		routes.add(types.Route(route_id, long_name=name or ''))

	for trip_id, trip_data in tt.trips.items():
		route = routes.get(trip_data.route) or routes.add(types.Route(trip_data.route))
		trip = types.Trip( trip_id, route,
			types.Direction.from_gtfs(trip_data.get('direction') or 0) )
		for n, ts in enumerate(trip_data.stops, 1):
			stop_id, dts_arr, dts_dep, seq = struct_from_val(ts, TestTripStop, as_tuple=True)
			if not dts_arr or dts_arr == 'x': dts_arr = dts_dep
			if not dts_dep or dts_dep == 'x': dts_dep = dts_arr
			dts_arr, dts_dep = map(gt.u.dts_parse, [dts_arr, dts_dep])
			trip.add(types.TripStop(trip, stops[stop_id], seq or n, dts_arr, dts_dep))
		trips.add(trip)

	return types.Timetable(stops, routes, trips)

def extractor_from_data(tt, **conf_kws):
	conf = gt.engine.EngineConf(**conf_kws)
	timetable = timetable_from_data(tt)
	return timetable, gt.engine.TransferExtractor(timetable, conf=conf, timer_func=gt.calc_timer)


def transfer_keys(transfers):
	'Simple comparable (stop_from, route_to, direction_to) tuples for transfers.'
	return list(
		(tr.stop_from.id, tr.rd_to.route.id, tr.rd_to.direction.value)
		for tr in transfers )
