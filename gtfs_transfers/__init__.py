import itertools as it, operator as op, functools as ft
from pathlib import Path
import zipfile, time

from . import engine, gtfs, stats, dump, geo, utils as u, types as t


def calc_timer(func, *args, log=u.get_logger('transfers.timer'), timer_name=None, **kws):
	if not timer_name:
		func_base = func if not isinstance(func, ft.partial) else func.func
		timer_name = '.'.join([func_base.__module__.strip('__'), func_base.__qualname__])
	log.debug('[{}] Starting...', timer_name)
	td = time.monotonic()
	data = func(*args, **kws)
	td = time.monotonic() - td
	log.debug('[{}] Finished in: {:.1f}s', timer_name, td)
	return data


def init_gtfs_extractor(
		tt_path, tt_path_dump=None, conf=None,
		conf_engine=None, timer_func=None, log=u.get_logger('transfers.init') ):
	'''Load Timetable from GTFS directory/zip or pickled Timetable file,
			and create TransferExtractor for it.
		Regular file that is not a zip archive is assumed to be a pickle.
		Returns (timetable, extractor) tuple.'''
	if not conf: conf = gtfs.GTFSConf()

	timetable_func, extractor_func = gtfs.parse_timetable,\
		ft.partial(engine.TransferExtractor, conf=conf_engine, timer_func=timer_func)
	if timer_func:
		timetable_func, extractor_func = (
			ft.partial(timer_func, func) for func in [timetable_func, extractor_func] )

	tt_path = Path(tt_path)
	if tt_path.is_file() and not zipfile.is_zipfile(str(tt_path)):
		tt_load = u.pickle_load
		if timer_func: tt_load = ft.partial(timer_func, tt_load, timer_name='timetable_load')
		timetable = tt_load(tt_path, fail=True)
	else:
		timetable = timetable_func(tt_path, conf)
		if tt_path_dump: u.pickle_dump(timetable, tt_path_dump)
	log.debug(
		'Parsed timetable: stops={:,}, routes={:,}, trips={:,} (mean-stops={:,.1f})',
		len(timetable.stops), len(timetable.routes),
		len(timetable.trips), timetable.trips.stat_mean_stops() )

	return timetable, extractor_func(timetable)
