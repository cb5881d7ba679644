"""Unit tests for input discovery and output path derivation."""

import shutil
import tempfile
import unittest
from pathlib import Path

from qonvert.core.modules.errors import PathResolutionError
from qonvert.core.modules.processing.file_manager import build_jobs, resolve_input_paths


class TestResolveInputPaths(unittest.TestCase):
    """Test resolve_input_paths."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.videos = self.temp_dir / "videos"
        self.videos.mkdir()
        for name in ("b.mov", "a.gif", ".DS_Store"):
            (self.videos / name).touch()
        (self.videos / "nested").mkdir()
        (self.videos / "nested" / "deep.mov").touch()

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_single_directory_expands_to_files(self):
        paths = resolve_input_paths([str(self.videos)])

        self.assertEqual([p.name for p in paths], ["a.gif", "b.mov"])
        self.assertTrue(all(p.is_absolute() for p in paths))

    def test_multiple_files_kept_in_order(self):
        paths = resolve_input_paths([self.videos / "b.mov", self.videos / "a.gif"])

        self.assertEqual([p.name for p in paths], ["b.mov", "a.gif"])

    def test_single_file(self):
        paths = resolve_input_paths([self.videos / "a.gif"])
        self.assertEqual(paths, [(self.videos / "a.gif").absolute()])

    def test_directory_among_several_inputs_rejected(self):
        with self.assertRaises(PathResolutionError):
            resolve_input_paths([self.videos / "a.gif", self.videos / "nested"])

    def test_missing_path_rejected(self):
        with self.assertRaises(PathResolutionError):
            resolve_input_paths([self.videos / "missing.mov"])

    def test_empty_directory(self):
        empty = self.temp_dir / "empty"
        empty.mkdir()
        self.assertEqual(resolve_input_paths([empty]), [])


class TestBuildJobs(unittest.TestCase):
    """Test build_jobs."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.out = self.temp_dir / "out"
        self.out.mkdir()
        self.inputs = [Path("/rushes/clip.one.mov"), Path("/rushes/intro.gif")]

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_extension_replaced(self):
        jobs = build_jobs(self.out, self.inputs, "mp4")

        self.assertEqual([j.output_path for j in jobs],
                         [self.out / "clip.one.mp4", self.out / "intro.mp4"])
        self.assertEqual([j.input_path for j in jobs], self.inputs)

    def test_dotted_extension(self):
        jobs = build_jobs(self.out, self.inputs[:1], ".webm")
        self.assertEqual(jobs[0].output_path, self.out / "clip.one.webm")

    def test_empty_extension_keeps_suffix(self):
        jobs = build_jobs(self.out, self.inputs[:1], "")
        self.assertEqual(jobs[0].output_path, self.out / "clip.one.mov")

    def test_output_dir_must_exist(self):
        with self.assertRaises(PathResolutionError):
            build_jobs(self.temp_dir / "nope", self.inputs, "mp4")

    def test_output_dir_must_be_directory(self):
        not_a_dir = self.temp_dir / "file.txt"
        not_a_dir.touch()
        with self.assertRaises(PathResolutionError):
            build_jobs(not_a_dir, self.inputs, "mp4")

    def test_refuses_to_overwrite_input(self):
        source = self.out / "clip.mp4"
        source.touch()
        with self.assertRaises(PathResolutionError):
            build_jobs(self.out, [source], "mp4")


if __name__ == '__main__':
    unittest.main()
