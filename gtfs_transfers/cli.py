import itertools as it, operator as op, functools as ft
import sys

import gtfs_transfers as gt


log = gt.u.get_logger('transfers.cli')


def main(args=None):
	conf = gt.gtfs.GTFSConf()
	conf_engine = gt.engine.EngineConf()

	import argparse
	parser = argparse.ArgumentParser(
		description='Find transfers between GTFS route-directions'
			' and calculate statistics for transfer waiting times.')
	parser.add_argument('gtfs_dir_or_pickle',
		help='Path to gtfs data directory or zip file to load'
			' timetable from or a pickled timetable object (if points to a non-zip file).')

	group = parser.add_argument_group('Basic timetable/parser options')
	group.add_argument('--cache-timetable', metavar='path',
		help='Store parsed timetable data (in pickle format) to specified file.'
			' This file can then be used in place of gtfs dir, and should load much faster.')
	group.add_argument('--direction-default',
		type=int, choices=[0, 1], default=conf.direction_default, metavar='{0,1}',
		help='direction_id value to use for trips where it is not set. Default: %(default)s')

	group = parser.add_argument_group('Misc/debug options')
	group.add_argument('--engine-conf', metavar='yaml-data',
		help='Override values for EngineConf as a YAML mapping.'
			' Example: {transfer_radius: 150, walk_speed: 1.2}')
	group.add_argument('--debug', action='store_true', help='Verbose operation mode.')

	cmds = parser.add_subparsers(title='Commands', dest='call')


	cmd = cmds.add_parser('routes',
		help='List all route-directions in the timetable with their destinations.')


	cmd = cmds.add_parser('stops',
		help='List stops of the route-direction in their most common order.')
	cmd.add_argument('route_id', help='GTFS route_id of the route.')
	cmd.add_argument('direction_id', help='GTFS direction_id (0 or 1) of the route.')


	cmd = cmds.add_parser('transfers',
		help='Find transfers from route-direction and output transfer time stats for them.')

	group = cmd.add_argument_group('Query parameters')
	group.add_argument('route_id', help='GTFS route_id of the route to transfer from.')
	group.add_argument('direction_id', help='GTFS direction_id (0 or 1) of the route.')
	group.add_argument('-r', '--radius', type=float, metavar='meters',
		help='Max distance between stops to consider for'
			' transfers. Default: {}'.format(conf_engine.transfer_radius))
	group.add_argument('-w', '--window', nargs=2, metavar=('start', 'end'),
		help='Only consider arrivals within specified time interval (inclusive),'
			' with both times as HH:MM, HH:MM:SS or just seconds int/float.'
			' Example: -w 07:00 09:00. Default is to use whole timetable.')
	group.add_argument('-t', '--trunk-filter', action='store_true',
		help='Return best transfer from every stop, only keeping first and last one'
			' where routes run in parallel for 3 or more stops, instead of one best transfer'
			' for each destination route-direction.')

	group = cmd.add_argument_group('Output')
	group.add_argument('-f', '--format', choices=['csv', 'json'], default='csv',
		help='Output format. Default: %(default)s')
	group.add_argument('-o', '--output', metavar='path',
		help='File to write results to. Default is to print them to stdout.')


	opts = parser.parse_args(sys.argv[1:] if args is None else args)

	gt.u.logging.basicConfig(
		format='%(asctime)s :: %(name)s %(levelname)s :: %(message)s',
		datefmt='%Y-%m-%d %H:%M:%S',
		level=gt.u.logging.DEBUG if opts.debug else gt.u.logging.WARNING )

	if not opts.call: parser.error('Command must be specified.')

	conf.direction_default = opts.direction_default
	if opts.engine_conf:
		import yaml
		for k, v in (yaml.safe_load(opts.engine_conf) or dict()).items():
			if not hasattr(conf_engine, k):
				parser.error('Unrecognized engine conf option: {!r} (value: {!r})'.format(k, v))
			setattr(conf_engine, k, v)

	rd = None # for stops/transfers commands
	if opts.call in ['stops', 'transfers']:
		if opts.direction_id not in ['0', '1']:
			parser.error('direction_id must be either 0 or 1, not {!r}'.format(opts.direction_id))
	if opts.call == 'transfers' and opts.window:
		try: window = tuple(map(gt.u.dts_parse, opts.window))
		except ValueError as err: parser.error('Failed to parse --window value: {}'.format(err))
		if window[0] > window[1]:
			parser.error('--window start must not be later than end: {} {}'.format(*opts.window))
		log.debug('Using arrivals window: {} - {}', *map(gt.u.dts_format, window))
		conf_engine.window = window

	try:
		timetable, extractor = gt.init_gtfs_extractor(
			opts.gtfs_dir_or_pickle, tt_path_dump=opts.cache_timetable,
			conf=conf, conf_engine=conf_engine, timer_func=gt.calc_timer )
	except (gt.gtfs.GTFSError, gt.engine.TimetableError) as err:
		parser.error('Failed to load timetable: {}'.format(err))

	if opts.call in ['stops', 'transfers']:
		rd = extractor.route_direction(opts.route_id, opts.direction_id)
		if not rd: parser.error('Unknown route_id: {!r}'.format(opts.route_id))
		if rd not in extractor.schedule:
			log.warning('Route-direction has no trips in the timetable: {}', rd)


	if opts.call == 'routes':
		for line in gt.dump.format_route_directions(extractor): print(line)

	elif opts.call == 'stops':
		stops = extractor.stops_for_route_direction(rd)
		for line in gt.dump.format_stop_list(extractor, rd, stops): print(line)

	elif opts.call == 'transfers':
		transfers = extractor.find_transfers(rd, radius=opts.radius, trunk_filter=opts.trunk_filter or None)
		log.info('Found transfers to {:,} route-directions', len(transfers))
		extractor.annotate_transfers(transfers)
		write_func = dict(csv=gt.dump.write_csv, json=gt.dump.write_json)[opts.format]
		if opts.output:
			with gt.u.safe_replacement(opts.output, 'w', newline='') as dst:
				count = write_func(dst, extractor, transfers)
		else: count = write_func(sys.stdout, extractor, transfers)
		log.info('Wrote {:,} transfer(s)', count)

	else: parser.error('Action not implemented: {}'.format(opts.call))

if __name__ == '__main__': sys.exit(main())
