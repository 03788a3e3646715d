import unittest
from dhikr_counter.animator import AnimationState, DisplayAnimator, LoopTickScheduler

class TestLoopTickScheduler(unittest.TestCase):
    def test_fires_when_due(self):
        now = [0.0]
        scheduler = LoopTickScheduler(clock=lambda: now[0])
        calls = []
        handle = scheduler.schedule_repeating(0.5, lambda: calls.append(now[0]))

        self.assertEqual(scheduler.run_pending(0.4), 0)
        self.assertEqual(scheduler.run_pending(0.5), 1)
        self.assertEqual(scheduler.run_pending(0.6), 0)
        self.assertEqual(scheduler.run_pending(1.0), 1)
        self.assertEqual(len(calls), 2)

        handle.cancel()
        self.assertEqual(scheduler.run_pending(10.0), 0)
        self.assertEqual(scheduler.active_count(), 0)

class TestDisplayAnimator(unittest.TestCase):
    def setUp(self):
        self.now = 0.0
        self.scheduler = LoopTickScheduler(clock=lambda: self.now)
        self.committed = {"a": 0, "b": 0}
        self.changes = []
        self.animator = DisplayAnimator(
            self.committed, ["a", "b"], self.scheduler, interval_s=0.12,
            on_change=lambda key, value: self.changes.append((key, value)),
        )

    def step(self):
        self.now += 1.0
        self.scheduler.run_pending()

    def test_one_unit_per_tick_then_idle(self):
        self.committed["a"] = 3
        self.animator.start_animation_for_key("a")
        self.assertEqual(self.animator.state("a"), AnimationState.ANIMATING)

        for expected in (1, 2, 3):
            self.step()
            self.assertEqual(self.animator.displayed["a"], expected)
        self.assertEqual(self.animator.state("a"), AnimationState.ANIMATING)

        self.step()
        self.assertEqual(self.animator.state("a"), AnimationState.IDLE)
        self.assertEqual(self.scheduler.active_count(), 0)
        self.assertEqual(self.changes, [("a", 1), ("a", 2), ("a", 3)])

    def test_start_is_idempotent(self):
        self.committed["a"] = 1
        self.animator.start_animation_for_key("a")
        self.animator.start_animation_for_key("a")
        self.assertEqual(self.scheduler.active_count(), 1)
        self.step()
        self.assertEqual(self.animator.displayed["a"], 1)

    def test_keys_animate_independently(self):
        self.committed.update(a=1, b=3)
        self.animator.start_animation_for_key("a")
        self.animator.start_animation_for_key("b")
        self.step()
        self.step()
        self.assertEqual(self.animator.state("a"), AnimationState.IDLE)
        self.assertEqual(self.animator.state("b"), AnimationState.ANIMATING)
        self.assertEqual(self.animator.displayed, {"a": 1, "b": 2})

    def test_self_corrects_downwards(self):
        self.animator.displayed["a"] = 2
        self.animator.start_animation_for_key("a")
        self.step()
        self.step()
        self.assertEqual(self.animator.displayed["a"], 0)
        self.step()
        self.assertFalse(self.animator.is_animating())

    def test_committed_growing_during_animation(self):
        self.committed["a"] = 1
        self.animator.start_animation_for_key("a")
        self.step()
        self.committed["a"] = 2
        self.animator.start_animation_for_key("a")
        self.step()
        self.assertEqual(self.animator.displayed["a"], 2)
        self.assertEqual(self.scheduler.active_count(), 1)

    def test_reset(self):
        self.committed.update(a=5, b=2)
        self.animator.start_animation_for_key("a")
        self.animator.start_animation_for_key("b")
        self.step()
        self.animator.reset()
        self.assertEqual(self.committed, {"a": 0, "b": 0})
        self.assertEqual(self.animator.displayed, {"a": 0, "b": 0})
        self.assertFalse(self.animator.is_animating())
        self.assertEqual(self.scheduler.active_count(), 0)
        self.step()
        self.assertEqual(self.animator.displayed, {"a": 0, "b": 0})

if __name__ == '__main__':
    unittest.main()
