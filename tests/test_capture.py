import pytest

from tron.capture import infer_metadata_node


def test_next_video_node():
    assert infer_metadata_node("/dev/video2") == "/dev/video3"


@pytest.mark.parametrize("number", [0, 7, 50, 1234])
def test_metadata_node_is_a_video_node(number):
    node = infer_metadata_node(f"/dev/video{number}")
    assert node.startswith("/dev/video")
    assert int(node[len("/dev/video"):]) > number


@pytest.mark.parametrize(
    "node",
    ["/dev/video", "/dev/videoabc", "/dev/v4l/by-id/camera", "video3", "/dev/video-1", "/dev/video 1"],
)
def test_non_video_nodes_have_no_metadata_node(node):
    assert infer_metadata_node(node) is None