import io
import unittest
from contextlib import redirect_stdout
from dhikr_counter.animator import LoopTickScheduler
from dhikr_counter.config import cfg
from dhikr_counter.counter import PhraseCounter
from dhikr_counter.matching.lexicon import Lexicon, default_lexicon
from dhikr_counter.models import RevisionEvent
from dhikr_counter.recent_finals import RecentFinalsGuard

class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float):
        self.t += dt

class CounterTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.scheduler = LoopTickScheduler(clock=self.clock)
        self.counter = PhraseCounter(
            default_lexicon(),
            scheduler=self.scheduler,
            guard=RecentFinalsGuard(window_s=1.5, clock=self.clock),
        )

    def committed(self, key: str) -> int:
        return self.counter.get_committed_counts()[key]

    def settle(self, max_steps: int = 1000):
        """Advance the fake clock until no animation is running."""
        for _ in range(max_steps):
            if not self.counter.animator.is_animating():
                return
            self.clock.advance(1.0)
            self.scheduler.run_pending()
        self.fail("animations did not settle")


class TestPhraseCounter(CounterTestCase):
    def test_final_commits_occurrences(self):
        self.counter.on_revision(0, "allahu akbar allahu akbar", True)
        self.assertEqual(self.committed("allahuakbar"), 2)

    def test_single_key_lexicon(self):
        counter = PhraseCounter(
            Lexicon.from_phrases({"allahuakbar": ["allahu akbar"]}),
            scheduler=LoopTickScheduler(clock=self.clock),
            guard=RecentFinalsGuard(clock=self.clock),
        )
        counter.on_revision(0, "allahu akbar allahu akbar", True)
        self.assertEqual(counter.get_committed_counts(), {"allahuakbar": 2})

    def test_interim_never_commits(self):
        self.counter.on_revision(0, "allahu akb", False)
        self.assertEqual(self.counter.last_occurrences[0]["allahuakbar"], 0)
        self.counter.on_revision(0, "allahu akbar allahu akbar", False)
        self.assertEqual(self.counter.last_occurrences[0]["allahuakbar"], 2)
        self.assertEqual(self.counter.total_committed(), 0)

        self.counter.on_revision(0, "allahu akbar", True)
        self.assertEqual(self.committed("allahuakbar"), 1)
        self.assertEqual(self.counter.total_committed(), 1)

    def test_commit_equals_final_snapshot(self):
        for text in ["subhan", "subhanallah al", "subhanallah alhamdulillah allahu"]:
            self.counter.on_revision(3, text, False)
        self.counter.on_revision(3, "subhanallah alhamdulillah allahu akbar", True)
        self.assertEqual(self.counter.get_committed_counts(), {
            **{k: 0 for k in default_lexicon().keys},
            "subhanallah": 1, "alhamdulillah": 1, "allahuakbar": 1,
        })

    def test_duplicate_final_on_new_slot_ignored(self):
        self.counter.on_revision(0, "subhanallah", True)
        self.assertEqual(self.committed("subhanallah"), 1)
        self.clock.advance(0.5)
        self.counter.on_revision(1, "subhanallah", True)
        self.assertEqual(self.committed("subhanallah"), 1)
        self.assertNotIn(1, self.counter.last_applied)
        self.assertIn(1, self.counter.last_occurrences)

    def test_duplicate_check_uses_normalized_text(self):
        self.counter.on_revision(0, "Subhanallah!", True)
        self.counter.on_revision(1, "  subhanallah ", True)
        self.assertEqual(self.committed("subhanallah"), 1)

    def test_same_text_after_window_counts_again(self):
        self.counter.on_revision(0, "subhanallah", True)
        self.clock.advance(2.0)
        self.counter.on_revision(1, "subhanallah", True)
        self.assertEqual(self.committed("subhanallah"), 2)

    def test_redelivered_final_applies_only_the_difference(self):
        self.counter.on_revision(0, "allahu akbar", True)
        self.clock.advance(2.0)
        self.counter.on_revision(0, "allahu akbar allahu akbar", True)
        self.assertEqual(self.committed("allahuakbar"), 2)
        self.clock.advance(2.0)
        # Fewer occurrences never take counts back
        self.counter.on_revision(0, "alhamdulillah", True)
        self.assertEqual(self.committed("allahuakbar"), 2)
        self.assertEqual(self.committed("alhamdulillah"), 1)

    def test_committed_never_decreases(self):
        previous = self.counter.get_committed_counts()
        revisions = [
            (0, "subhanallah", False), (0, "subhanallah subhanallah", True),
            (1, "allahu", False), (1, "", True), (2, None, True),
            (2, "allahu akbar", True), (3, "la ilaha illallah", False),
        ]
        for slot, text, final in revisions:
            self.clock.advance(0.3)
            self.counter.on_revision(slot, text, final)
            current = self.counter.get_committed_counts()
            for key, value in current.items():
                self.assertGreaterEqual(value, previous[key])
            previous = current

    def test_malformed_input_is_noop(self):
        for text in [None, "", "   ", "!!!???", "\x00\x01", "🙂🙂"]:
            self.clock.advance(2.0)
            self.counter.on_revision(9, text, True)
        self.assertEqual(self.counter.total_committed(), 0)

    def test_displayed_counts_converge(self):
        self.counter.on_revision(0, "subhanallah subhanallah subhanallah", True)
        self.assertEqual(self.counter.get_displayed_counts()["subhanallah"], 0)
        self.assertTrue(self.counter.animator.is_animating())
        self.settle()
        self.assertEqual(self.counter.get_displayed_counts()["subhanallah"], 3)
        self.assertEqual(self.scheduler.active_count(), 0)

    def test_reset_clears_everything(self):
        self.counter.on_revision(0, "subhanallah alhamdulillah", True)
        self.clock.advance(1.0)
        self.scheduler.run_pending()
        self.assertTrue(self.counter.animator.is_animating())

        self.counter.on_reset()

        self.assertTrue(all(v == 0 for v in self.counter.get_committed_counts().values()))
        self.assertTrue(all(v == 0 for v in self.counter.get_displayed_counts().values()))
        self.assertFalse(self.counter.animator.is_animating())
        self.assertEqual(self.scheduler.active_count(), 0)
        self.assertEqual(self.counter.last_applied, {})

        # Timers fired after a reset change nothing
        self.clock.advance(1.0)
        self.assertEqual(self.scheduler.run_pending(), 0)

        # Identical text right after reset is a fresh count, not a duplicate
        self.counter.on_revision(0, "subhanallah alhamdulillah", True)
        self.assertEqual(self.committed("subhanallah"), 1)

    def test_session_start_keeps_counts(self):
        self.counter.on_revision(0, "subhanallah", True)
        self.counter.on_event(RevisionEvent.session_started(ts=0.0))
        self.assertEqual(self.counter.last_applied, {})
        self.clock.advance(2.0)
        self.counter.on_event(RevisionEvent(slot_index=0, text="subhanallah", is_final=True))
        self.assertEqual(self.committed("subhanallah"), 2)

    def test_slots_before_a_final_are_dropped(self):
        for slot in range(5):
            self.clock.advance(2.0)
            self.counter.on_revision(slot, "subhanallah", False)
            self.counter.on_revision(slot, "subhanallah", True)
        self.assertEqual(list(self.counter.last_applied), [4])
        self.assertEqual(list(self.counter.last_occurrences), [4])
        self.assertEqual(self.committed("subhanallah"), 5)

        # The newest finalized slot is still redelivery-safe
        self.clock.advance(2.0)
        self.counter.on_revision(4, "subhanallah", True)
        self.assertEqual(self.committed("subhanallah"), 5)

    def test_interim_keeps_slots_before_it(self):
        self.counter.on_revision(0, "subhanallah", True)
        self.counter.on_revision(1, "allahu", False)
        self.assertIn(0, self.counter.last_applied)

    def test_interim_log_shows_matched_spans(self):
        orig = cfg.log_interim
        out = io.StringIO()
        try:
            cfg.log_interim = True
            with redirect_stdout(out):
                self.counter.on_revision(0, "Allahu Akbar subhanallah", False)
        finally:
            cfg.log_interim = orig
        self.assertIn("[COUNTER] Interim[0]", out.getvalue())
        self.assertIn("('allahuakbar', 'allahu akbar')", out.getvalue())
        self.assertIn("('subhanallah', 'subhanallah')", out.getvalue())


class TestDefaultScheduler(unittest.TestCase):
    def test_animation_follows_injected_clock(self):
        clock = FakeClock()
        counter = PhraseCounter(default_lexicon(), clock=clock)
        counter.on_revision(0, "allahu akbar allahu akbar", True)
        self.assertEqual(counter.animator.scheduler.run_pending(), 0)

        clock.advance(1.0)
        counter.animator.scheduler.run_pending()
        self.assertEqual(counter.get_displayed_counts()["allahuakbar"], 1)
        clock.advance(1.0)
        counter.animator.scheduler.run_pending()
        self.assertEqual(counter.get_displayed_counts()["allahuakbar"], 2)

if __name__ == '__main__':
    unittest.main()
