import pytest

from gazestream.protocol.encoder import encode_frame
from gazestream.protocol.field_table import (
    FieldDescriptor,
    FieldTable,
    FieldTableRegistry,
    WireType,
)


@pytest.fixture
def small_table():
    """Version 1 layout with a 2-byte mask and two fields."""
    return FieldTable(
        version=1,
        mask_bits=16,
        fields=[
            FieldDescriptor.of("FrameNumber", WireType.UINT32, mask_bit=0),
            FieldDescriptor.of("CameraPositions", WireType.POINT3D_ARRAY, mask_bit=1, count=2),
        ],
    )


@pytest.fixture
def small_registry(small_table):
    return FieldTableRegistry([small_table])


@pytest.fixture
def tracking_values():
    """Realistic v1 frame with head, gaze and camera data."""
    return {
        "FrameNumber": 4211,
        "TimeStamp": 1_700_000_123_456,
        "FrameRate": 60.0,
        "CameraPositions": [(-0.2, 0.0, 0.0), (0.2, 0.0, 0.0)],
        "CameraRotations": [(0.0, 0.1, 0.0), (0.0, -0.1, 0.0)],
        "UserMarker": (0, 1_700_000_100_000, 98_765, 1, 42),
        "HeadPosition": (0.01, -0.02, 0.65),
        "HeadRotationQuaternion": (0.99, 0.0, 0.14, 0.0),
        "GazeOrigin": (0.01, -0.02, 0.65),
        "GazeDirection": (0.1, -0.1, -0.99),
        "PupilDiameterQ": 0.5,
        "Blink": 0,
        "TrackingError": -3,
        "LeftEyelidState": 2,
        "GPSPosition": (59.33, 18.06),
        "FilteredEstimatedRightGazePitch": -0.05,
    }


def _encode_stream(count, start=0):
    return [
        encode_frame(
            {
                "FrameNumber": start + i,
                "TimeStamp": (start + i) * 16_667,
                "CameraPositions": [(-0.2, 0.0, 0.0), (0.2, 0.0, 0.0)],
                "GazeDirection": (0.0, 0.0, -1.0),
            }
        )
        for i in range(count)
    ]


@pytest.fixture
def make_stream():
    """Factory for encoded v1 packets with consecutive frame numbers."""
    return _encode_stream

