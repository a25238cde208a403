### Output of annotated transfers - CSV table and JSON list

import csv, json


csv_header = [ 'route_id', 'direction_id', 'destination', 'at',
	'min', 'percentile_25', 'median', 'percentile_75', 'max', 'count' ]


def write_csv(dst, extractor, transfers):
	'''Write CSV table for transfers with stats to dst file object.
		Transfers without any transfer opportunities (stats=None) are skipped.
		Times are in seconds, with percentiles as short as possible (e.g. 750 or 337.5).
		Returns number of rows written.'''
	writer, rows = csv.writer(dst), 0
	writer.writerow(csv_header)
	for transfer in transfers:
		if not transfer.has_stats: continue
		writer.writerow([
			transfer.rd_to.route.id, transfer.rd_to.direction.to_gtfs(),
			extractor.route_direction_name(transfer.rd_to), transfer.stop_from.name,
			*map('{:g}'.format, transfer.stats[:5]), transfer.n ])
		rows += 1
	return rows


def transfer_dict(extractor, transfer):
	stop_dict = lambda stop: dict(id=stop.id, name=stop.name, lat=stop.lat, lon=stop.lon)
	rd_dict = lambda rd: dict( route_id=rd.route.id,
		direction_id=rd.direction.to_gtfs(), destination=extractor.route_direction_name(rd) )
	return dict(
		rd_from=rd_dict(transfer.rd_from), rd_to=rd_dict(transfer.rd_to),
		stop_from=stop_dict(transfer.stop_from), stop_to=stop_dict(transfer.stop_to),
		distance=round(transfer.distance, 1),
		stats=transfer.stats._asdict() if transfer.has_stats else None,
		times=list(tt._asdict() for tt in transfer.times or list()) )

def write_json(dst, extractor, transfers, skip_empty=False):
	'Write JSON list of all transfers (including ones without stats, unless skip_empty=True).'
	data = list(
		transfer_dict(extractor, transfer) for transfer in transfers
		if not (skip_empty and not transfer.has_stats) )
	json.dump(data, dst, indent=2, sort_keys=True)
	dst.write('\n')
	return len(data)


def format_stop_list(extractor, rd, stops):
	'Text lines for a stop sequence of route-direction, for CLI output.'
	yield '{} -> {}'.format(rd, extractor.route_direction_name(rd))
	for n, stop in enumerate(stops, 1):
		yield '  {:>3d} {} [{}] ({:.6f}, {:.6f})'.format(n, stop.name, stop.id, stop.lat, stop.lon)

def format_route_directions(extractor):
	for rd in extractor.route_directions():
		yield '{}\t{}\t{}\t{}'.format( rd.route.id,
			rd.direction.to_gtfs(), rd.route.name, extractor.route_direction_name(rd) )
