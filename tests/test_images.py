"""Tests for image probing helpers."""

from unittest.mock import Mock

import pytest

from super_gsi.domain import ImageFormat
from super_gsi.storage import images

SPARSE_DESCRIPTION = "Android sparse image, version: 1.0, Total of 262144 4096-byte output blocks"
EXT4_DESCRIPTION = "Linux rev 1.0 ext4 filesystem data, UUID=1234 (extents) (large files)"


class TestHumanSize:
    @pytest.mark.parametrize(
        "size, expected",
        [
            (None, "0B"),
            (512, "512.0B"),
            (2048, "2.0KB"),
            (1024**3, "1.0GB"),
            (int(2.5 * 1024**3), "2.5GB"),
        ],
    )
    def test_formats(self, size, expected):
        assert images.human_size(size) == expected


class TestClassifyDescription:
    def test_sparse(self):
        assert images.classify_description(SPARSE_DESCRIPTION) == ImageFormat.SPARSE

    def test_raw_filesystem(self):
        assert images.classify_description(EXT4_DESCRIPTION) == ImageFormat.RAW

    def test_data_is_raw(self):
        assert images.classify_description("data") == ImageFormat.RAW

    def test_empty_is_unknown(self):
        assert images.classify_description("") == ImageFormat.UNKNOWN


class TestSignatureMatching:
    @pytest.mark.parametrize(
        "description",
        [EXT4_DESCRIPTION, "Linux rev 1.0 ext2 filesystem data", SPARSE_DESCRIPTION, "EROFS filesystem"],
    )
    def test_filesystem_signatures(self, description):
        assert images.looks_like_filesystem(description) is True

    @pytest.mark.parametrize("description", ["data", "Zip archive data", "", None])
    def test_non_filesystem(self, description):
        assert images.looks_like_filesystem(description) is False

    @pytest.mark.parametrize("description", ["data", SPARSE_DESCRIPTION])
    def test_super_signatures(self, description):
        assert images.looks_like_super(description) is True

    def test_text_is_not_super(self):
        assert images.looks_like_super("ASCII text") is False


class TestProbeImage:
    def test_probe_sparse(self, mock_subprocess_run, make_image):
        path = make_image("super.img", size=100)
        mock_subprocess_run.return_value = Mock(returncode=0, stdout=SPARSE_DESCRIPTION + "\n", stderr="")

        image = images.probe_image(path)

        assert image.path == path
        assert image.size_bytes == 100
        assert image.image_format == ImageFormat.SPARSE
        assert image.description == SPARSE_DESCRIPTION
        assert mock_subprocess_run.call_args[0][0] == ["file", "-b", str(path)]

    def test_probe_failure_gives_unknown(self, mock_subprocess_run, make_image):
        path = make_image("gsi.img", size=10)
        mock_subprocess_run.return_value = Mock(returncode=1, stdout="", stderr="file: broken magic")

        image = images.probe_image(path)

        assert image.image_format == ImageFormat.UNKNOWN
        assert image.description == ""
