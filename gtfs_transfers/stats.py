### Summary statistics for transfer time samples

import math

from . import types as t


def percentile(p, values):
	'''Return p-th percentile of sorted values sequence,
			linearly interpolated between two closest ranks.
		Rank is continuous p/100 * (n-1), so 0 and 100 are min and max values.
		Returns None for empty sequence.'''
	if not values: return None
	if len(values) == 1: return values[0]
	rank = p / 100 * (len(values) - 1)
	below, above = values[math.floor(rank)], values[math.ceil(rank)]
	frac = rank % 1
	return below + (above - below) * frac

def summarize(values):
	'''Return TransferStats tuple for a sample of values (in any order),
		or None if sample is empty, so that all stats are always set together.'''
	values = sorted(values)
	if not values: return None
	return t.public.TransferStats(
		values[0], percentile(25, values), percentile(50, values),
		percentile(75, values), values[-1], len(values) )
