"""Entry point for the cinematic sequence preview."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pygame

from cinematic.config import load_config
from cinematic.easing import clamp01, damping_factor
from cinematic.sequencer import Sequencer
from rendering.draw_system import SceneRenderer, build_guide
from rendering.opengl_context import initialize_gl, resize_viewport

logger = logging.getLogger(__name__)


class ScrollInput:
    """Minimal scroll-progress source: wheel and keys nudge a damped target."""

    def __init__(self, wheel_step: float = 0.02, key_step: float = 0.05, rate: float = 6.0) -> None:
        self.wheel_step = wheel_step
        self.key_step = key_step
        self.rate = rate
        self.target = 0.0
        self.progress = 0.0

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEWHEEL:
            self.nudge(-event.y * self.wheel_step)
        elif event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_DOWN, pygame.K_PAGEDOWN, pygame.K_SPACE):
                self.nudge(self.key_step)
            elif event.key in (pygame.K_UP, pygame.K_PAGEUP):
                self.nudge(-self.key_step)
            elif event.key == pygame.K_HOME:
                self.target = 0.0
            elif event.key == pygame.K_END:
                self.target = 1.0

    def nudge(self, amount: float) -> None:
        self.target = clamp01(self.target + amount)

    def update(self, dt: float) -> float:
        self.progress += (self.target - self.progress) * damping_factor(self.rate, dt)
        return self.progress


def run() -> None:
    parser = argparse.ArgumentParser(description="Scroll-driven cinematic sequence preview")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", type=Path, default=None, help="Sequence YAML (defaults to the packaged one)")
    parser.add_argument("--windowed", action="store_true", help="Run in a window instead of fullscreen")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    preview = config.preview

    pygame.init()
    pygame.display.set_caption("Cinematic Sequence Preview")
    if args.windowed:
        pygame.display.set_mode(
            (preview.width, preview.height), pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE
        )
    else:
        pygame.display.set_mode(
            (0, 0), pygame.OPENGL | pygame.DOUBLEBUF | pygame.FULLSCREEN
        )
    window_size = pygame.display.get_surface().get_size()
    initialize_gl(window_size)

    sequencer = Sequencer.from_config(config, viewport_size=window_size)
    guides = [
        build_guide(guide, sequencer.table, sequencer.trajectory.position_curve)
        for guide in config.guides
    ]
    renderer = SceneRenderer(guides, point_scale=preview.point_scale)
    scroll = ScrollInput(preview.wheel_step, preview.key_step, preview.scroll_rate)

    clock = pygame.time.Clock()
    running = True
    while running:
        dt = clock.tick(preview.fps) / 1000.0
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                running = False
            elif event.type == pygame.VIDEORESIZE:
                pygame.display.set_mode(event.size, pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE)
                resize_viewport(event.size)
                sequencer.camera.update_viewport(event.size)
            else:
                scroll.handle_event(event)

        scene = sequencer.tick(scroll.update(dt), dt)
        renderer.draw(scene)
        pygame.display.flip()

    logger.info("Preview closed after %d frames", sequencer.clock.frame_count)
    pygame.quit()


if __name__ == "__main__":
    run()
