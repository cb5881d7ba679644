"""
Unit tests for result aggregation and progress rendering.
"""

import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from qonvert.core.modules.errors import ProbeFailure, ProcessFailure
from qonvert.core.modules.interface.user_interface import (
    ProgressRenderer, ResultAggregator, RunSummary, report_summary
)
from qonvert.core.modules.models import ExecutionResult, Job, ProgressEvent, SizedJob


def _job(name, total=30):
    return SizedJob(Job(Path(f"/in/{name}.mov"), Path(f"/out/{name}.mp4")), total)


class TestResultAggregator(unittest.TestCase):
    """Test counting and forwarding of pipeline events."""

    def setUp(self):
        self.renderer = Mock(spec=ProgressRenderer)
        self.aggregator = ResultAggregator(self.renderer)

    def test_counts_results(self):
        a, b, c = _job("a"), _job("b"), _job("c")
        events = [
            ProgressEvent(a, 10, 30),
            ExecutionResult(a),
            ProgressEvent(b, 30, 30),
            ExecutionResult(b, ProcessFailure(1, "Conversion failed!")),
            ExecutionResult(c),
        ]

        summary = self.aggregator.consume(events)

        self.assertEqual(summary.succeeded, 2)
        self.assertEqual(summary.failed, 1)
        self.assertEqual(summary.executed, 3)
        self.assertEqual(summary.failures[0].job, b)
        self.assertFalse(summary.ok)
        self.assertEqual(self.renderer.update.call_count, 2)
        self.assertEqual(self.renderer.finish.call_count, 3)
        self.renderer.close.assert_called_once()

    def test_skipped_jobs_tracked_separately(self):
        job = Job(Path("/in/broken.mov"), Path("/out/broken.mp4"))
        self.aggregator.record_skipped(job, ProbeFailure(job.input_path, "no frames"))

        summary = self.aggregator.consume([])

        self.assertEqual(summary.skipped, 1)
        self.assertEqual(summary.executed, 0)
        self.assertFalse(summary.ok)

    def test_all_succeeded(self):
        summary = self.aggregator.consume([ExecutionResult(_job("a"))])
        self.assertTrue(summary.ok)

    def test_renderer_closed_when_stream_fails(self):
        def broken():
            yield ExecutionResult(_job("a"))
            raise KeyboardInterrupt

        with self.assertRaises(KeyboardInterrupt):
            self.aggregator.consume(broken())
        self.renderer.close.assert_called_once()

    def test_without_renderer(self):
        aggregator = ResultAggregator()
        aggregator.add_jobs([_job("a")])

        summary = aggregator.consume([ProgressEvent(_job("a"), 1, 30), ExecutionResult(_job("a"))])

        self.assertEqual(summary.succeeded, 1)


class TestProgressRenderer(unittest.TestCase):
    """Test bar bookkeeping with tqdm replaced."""

    def setUp(self):
        patcher = patch('qonvert.core.modules.interface.user_interface.create_progress_bar')
        self.mock_create = patcher.start()
        self.addCleanup(patcher.stop)
        self.bars = []

        def make_bar(**kwargs):
            bar = Mock()
            bar.n = 0
            bar.total = kwargs["total"] or None

            def update(delta):
                bar.n += delta
            bar.update.side_effect = update
            self.bars.append(bar)
            return bar
        self.mock_create.side_effect = make_bar

    def test_label_relative_to_output_dir(self):
        renderer = ProgressRenderer(output_dir=Path("/out"))
        job = SizedJob(Job(Path("/in/a.mov"), Path("/out/season/a.mp4")), 10)

        self.assertEqual(renderer.label(job), "season/a.mp4")

    def test_one_bar_per_job_identity(self):
        renderer = ProgressRenderer(Path("/out"))
        first, second = _job("same"), _job("same")

        renderer.add(first)
        renderer.add(second)
        renderer.add(first)

        self.assertEqual(len(self.bars), 2)
        positions = [c.kwargs["position"] for c in self.mock_create.call_args_list]
        self.assertEqual(positions, [0, 1])

    def test_update_advances_by_delta(self):
        renderer = ProgressRenderer(Path("/out"))
        job = _job("a")
        renderer.add(job)

        for position in (10, 25, 30):
            renderer.update(ProgressEvent(job, position, 30))

        self.assertEqual(self.bars[0].n, 30)
        self.assertEqual([c.args[0] for c in self.bars[0].update.call_args_list], [10, 15, 5])

    def test_unknown_total_filled_in_by_final_event(self):
        renderer = ProgressRenderer(Path("/out"))
        job = _job("a", total=0)
        renderer.add(job)

        renderer.update(ProgressEvent(job, 640, 640))

        self.assertEqual(self.bars[0].total, 640)

    @patch('qonvert.core.modules.interface.user_interface.tqdm.write')
    def test_failure_line(self, mock_write):
        renderer = ProgressRenderer(Path("/out"))
        job = _job("a")
        renderer.add(job)

        renderer.finish(ExecutionResult(job, ProcessFailure(1)))

        mock_write.assert_called_once()
        self.assertIn("failed: /out/a.mp4", mock_write.call_args[0][0])
        self.bars[0].close.assert_called_once()

    def test_success_marks_bar_done(self):
        renderer = ProgressRenderer(Path("/out"))
        job = _job("a")
        renderer.add(job)

        renderer.finish(ExecutionResult(job))

        self.bars[0].set_postfix_str.assert_called_once_with("done")


class TestReportSummary(unittest.TestCase):

    @patch('qonvert.utils.logging.tqdm.write')
    def test_summary_line(self, mock_write):
        report_summary(RunSummary(succeeded=2, failed=1, elapsed=3.0))

        lines = [c.args[0] for c in mock_write.call_args_list]
        self.assertIn("[RESULT] successfully transcoded 2 of 3 items in 3.0s", lines)
        self.assertTrue(any("1 items failed" in line for line in lines))


if __name__ == '__main__':
    unittest.main()
