from geometry.errors import InvalidArgument, AlreadyFinalized
from geometry.curve import QuadSegment, CompositeCurve, polyline_length, resample_polyline
from geometry.intersection import iter_intersections, line_intersection, shape_intersection
from geometry.offset import CurveOffsetSet, lane_offsets
from geometry.tracer import ArcLengthTracer
