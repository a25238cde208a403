import itertools as it, operator as op, functools as ft
from pathlib import Path
import unittest, tempfile, zipfile, shutil

from . import _common as c


class GTFSParserTests(unittest.TestCase):

	def setUp(self):
		self.tmp_dir = tempfile.TemporaryDirectory(prefix='gtfs-transfers.test.')
		self.path_tmp = Path(self.tmp_dir.name)

	def tearDown(self): self.tmp_dir.cleanup()

	def feed_copy(self, replace=None, drop=None):
		'Copy of the test feed dir, with {filename: contents} replaced and files dropped.'
		path = self.path_tmp / 'feed'
		shutil.copytree(str(c.path_gtfs_simple), str(path))
		for name, data in (replace or dict()).items(): (path / name).write_text(data)
		for name in drop or list(): (path / name).unlink()
		return path

	def check_timetable(self, timetable):
		types = c.gt.t.public
		self.assertEqual(len(timetable.stops), 8)
		self.assertEqual(len(timetable.routes), 3)
		self.assertEqual(len(timetable.trips), 9)

		stop = timetable.stops['Y3']
		self.assertEqual((stop.name, stop.lat, stop.lon), ('Y South, Terminal', -0.01, 0.01))
		route = timetable.routes['X']
		self.assertEqual((route.short_name, route.long_name, route.name), ('X', 'Crosstown', 'X Crosstown'))
		self.assertEqual(timetable.routes['Z'].type, 0)

		self.assertIs(timetable.trips['x4'].direction, types.Direction.d1)
		self.assertIs(timetable.trips['z1'].direction, types.Direction.d0)

		ts_list = sorted(timetable.trips['x3'], key=op.attrgetter('seq'))
		self.assertEqual(list(ts.stop.id for ts in ts_list), ['X1', 'X2', 'X3'])
		self.assertEqual((ts_list[1].dts_arr, ts_list[1].dts_dep), (26400, 26400))

		# Untimed Y2 stop is kept, without any times
		ts_list = sorted(timetable.trips['y9'], key=op.attrgetter('seq'))
		self.assertEqual(list(ts.stop.id for ts in ts_list), ['Y1', 'Y2', 'Y3'])
		self.assertEqual((ts_list[1].dts_arr, ts_list[1].dts_dep), (None, None))
		self.assertEqual((ts_list[2].dts_arr, ts_list[2].dts_dep), (30000, 30000))

		ts_list = sorted(timetable.trips['z1'], key=op.attrgetter('seq'))
		self.assertEqual(ts_list[1].dts_arr, 25*3600 + 10*60)

	def test_parse_dir(self):
		self.check_timetable(c.gt.gtfs.parse_timetable(c.path_gtfs_simple))

	def test_parse_zip(self):
		path_zip = self.path_tmp / 'feed.zip'
		with zipfile.ZipFile(str(path_zip), 'w') as dst:
			for p in c.path_gtfs_simple.iterdir(): dst.write(str(p), 'some-feed/{}'.format(p.name))
		self.check_timetable(c.gt.gtfs.parse_timetable(path_zip))

	def test_direction_default(self):
		conf = c.gt.gtfs.GTFSConf(direction_default=1)
		timetable = c.gt.gtfs.parse_timetable(c.path_gtfs_simple, conf)
		self.assertIs(timetable.trips['z1'].direction, c.gt.t.public.Direction.d1)
		self.assertIs(timetable.trips['x1'].direction, c.gt.t.public.Direction.d0)

	def test_no_direction_column(self):
		trips = list( line.rsplit(',', 1)[0] for line in
			(c.path_gtfs_simple / 'trips.txt').read_text().splitlines() )
		path = self.feed_copy(replace={'trips.txt': '\n'.join(trips) + '\n'})
		timetable = c.gt.gtfs.parse_timetable(path)
		self.assertEqual(len(timetable.trips), 9)
		self.assertIs(timetable.trips['x4'].direction, c.gt.t.public.Direction.d0)

	def test_errors(self):
		for replace, drop in [
				(None, ['stops.txt']),
				({'trips.txt': 'route_id,service_id,trip_id\nQ,daily,x1\n'}, None),
				({'stop_times.txt': (
					'trip_id,arrival_time,departure_time,stop_id,stop_sequence\n'
					'x1,07:00:00,07:00:00,Q1,1\n' )}, None),
				({'trips.txt': 'route_id,service_id,trip_id\nX,daily,x1\n'}, None) ]:
			with self.subTest(replace=replace, drop=drop):
				path = self.feed_copy(replace, drop)
				with self.assertRaises(c.gt.gtfs.GTFSError): c.gt.gtfs.parse_timetable(path)
				shutil.rmtree(str(path))

	def test_untimed_stop_transfer(self):
		path = self.path_tmp / 'feed-untimed'
		path.mkdir()
		for name, lines in dict(
				stops=[ 'stop_id,stop_name,stop_lat,stop_lon',
					'A1,A One,0.0,0.0', 'A2,A Two,0.0,0.01', 'A3,A Three,0.0,0.02',
					'B1,B One,0.01,0.01', 'B2,B Two,0.0001,0.01', 'B3,B Three,-0.01,0.01' ],
				routes=['route_id,route_short_name', 'A,A', 'B,B'],
				trips=['route_id,service_id,trip_id,direction_id', 'A,daily,a1,0', 'B,daily,b1,0'],
				stop_times=[ 'trip_id,arrival_time,departure_time,stop_id,stop_sequence',
					'a1,07:00:00,07:00:00,A1,1', 'a1,,,A2,2', 'a1,07:20:00,07:20:00,A3,3',
					'b1,07:00:00,07:00:00,B1,1', 'b1,07:15:00,07:15:00,B2,2',
					'b1,07:30:00,07:30:00,B3,3' ] ).items():
			(path / '{}.txt'.format(name)).write_text('\n'.join(lines) + '\n')
		timetable, extractor = c.gt.init_gtfs_extractor(path)

		rd_a, rd_b = extractor.route_direction('A', 0), extractor.route_direction('B', 0)
		self.assertEqual(
			list(stop.id for stop in extractor.stops_for_route_direction(rd_a)), ['A1', 'A2', 'A3'] )
		transfers = extractor.find_transfers(rd_a)
		self.assertEqual(c.transfer_keys(transfers), [('A2', 'B', 0)])
		self.assertEqual(c.transfer_keys(extractor.find_transfers(rd_b)), [('B2', 'A', 0)])
		# No times to calculate waits from, but transfer is still there
		extractor.annotate_transfers(transfers)
		self.assertFalse(transfers[0].has_stats)
		self.assertEqual(transfers[0].times, [])

	def test_not_a_feed(self):
		path = self.path_tmp / 'stops.txt'
		path.write_text('not a zip file')
		with self.assertRaises(c.gt.gtfs.GTFSError): c.gt.gtfs.parse_timetable(path)


class InitTests(unittest.TestCase):

	def test_timetable_cache(self):
		with tempfile.TemporaryDirectory(prefix='gtfs-transfers.test.') as tmp_dir:
			path_pickle = Path(tmp_dir) / 'tt.pickle'
			timetable, extractor = c.gt.init_gtfs_extractor(
				c.path_gtfs_simple, tt_path_dump=path_pickle, timer_func=c.gt.calc_timer )
			self.assertTrue(path_pickle.is_file())
			timetable_cached, extractor_cached = c.gt.init_gtfs_extractor(path_pickle)

		self.assertEqual(
			sorted(trip.id for trip in timetable_cached.trips),
			sorted(trip.id for trip in timetable.trips) )
		self.assertEqual(
			extractor_cached.schedule.stat_counts(), extractor.schedule.stat_counts() )
		for ex in extractor, extractor_cached:
			transfers = ex.find_transfers(ex.route_direction('Y', 0))
			self.assertEqual(c.transfer_keys(transfers), [('Y2', 'X', 0), ('Y2', 'X', 1)])
			self.assertEqual(
				list(ex.times(transfer) for transfer in transfers), [[300, 300], [1800]] )

	def test_conf(self):
		conf_engine = c.gt.engine.EngineConf(transfer_radius=5)
		timetable, extractor = c.gt.init_gtfs_extractor(
			c.path_gtfs_simple, conf_engine=conf_engine )
		self.assertIs(extractor.conf, conf_engine)
		self.assertEqual(extractor.find_transfers(extractor.route_direction('Y', 0)), [])


if __name__ == '__main__': unittest.main()
