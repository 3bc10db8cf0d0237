from gazestream.mock_streamer import (
    GAZE_DROPOUT_INTERVAL,
    MockStreamer,
    frame_packets,
    synthetic_frame,
)
from gazestream.protocol.field_table import load
from gazestream.protocol.frame_decoder import decode_frame
from gazestream.run_client import format_frame


def test_synthetic_frames_decode():
    records = [decode_frame(p) for p in frame_packets(version=1, frame_rate=60.0, limit=5)]

    assert [r.frame_number for r in records] == [0, 1, 2, 3, 4]
    assert all(r.is_present("HeadPosition") for r in records)
    assert records[1].as_array("CameraPositions").shape == (2, 3)


def test_gaze_drops_out_periodically():
    table = load(1)

    assert "GazeDirection" not in synthetic_frame(0, table, 60.0)
    assert "GazeDirection" in synthetic_frame(1, table, 60.0)
    assert "GazeDirection" not in synthetic_frame(GAZE_DROPOUT_INTERVAL, table, 60.0)


def test_gaze_direction_is_unit_length():
    record = decode_frame(list(frame_packets(1, 60.0, limit=2))[1])

    x, y, z = record.value("GazeDirection")
    assert abs(x * x + y * y + z * z - 1.0) < 1e-9


def test_format_frame():
    record = decode_frame(list(frame_packets(1, 60.0, limit=1))[0])

    line = format_frame(record)

    assert line.startswith("TimeStamp=0 FrameNumber=0 CameraPositions=(-0.200, 0.000, 0.000)")


def test_streamer_defaults():
    streamer = MockStreamer("udp", port=0)

    assert streamer.port == 0
    assert streamer.frame_interval > 0
