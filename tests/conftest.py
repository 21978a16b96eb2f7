"""Synthetic FlySight tracks shared across test modules (5 Hz, like the real logger)."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from jump_metrics.domain import DataPoint


BASE_TIME = datetime(2024, 5, 4, 17, 0, 0, tzinfo=timezone.utc)
DT = 0.2  # 5 Hz


def make_point(t_s, alt, vel_d, vel_n=0.0, vel_e=0.0, h_acc=10.0, num_sv=10):
    """DataPoint at BASE_TIME + t_s seconds."""
    return DataPoint(
        time=BASE_TIME + timedelta(seconds=t_s),
        latitude=47.0,
        longitude=8.0,
        altitude_msl=alt,
        vel_north=vel_n,
        vel_east=vel_e,
        vel_down=vel_d,
        horizontal_accuracy=h_acc,
        num_satellites=num_sv,
    )


def build_hop_n_pop():
    """
    GPS acquisition (filtered out) -> climb 960..1920 m -> exit ->
    ~15 s freefall peaking at 25 m/s -> deployment 25..6 m/s ->
    4 min canopy at 3-7 m/s -> stopped on the ground at 193 m.
    """
    points = []
    t = 0.0

    for i in range(50):
        points.append(make_point(t, 960 + (i % 3) * 20, -8 + (i % 2) * 3,
                                 vel_n=50 + (i % 2) * 5, vel_e=10,
                                 h_acc=150 - i * 2, num_sv=min(4 + i // 10, 10)))
        t += DT

    alt = 960.0
    for i in range(600):
        alt += 1.6
        points.append(make_point(t, alt, -4.8 + math.sin(i * 0.1) * 0.5,
                                 vel_n=52 + math.sin(i * 0.05) * 3, vel_e=12, h_acc=15, num_sv=9))
        t += DT

    for i in range(10):
        points.append(make_point(t, 1910 - i * 0.5, i * 2.0,
                                 vel_n=52 - i * 4, vel_e=12 - i, h_acc=12))
        t += DT

    for i in range(75):
        vel_d = min(20 + i * 0.3, 25)
        alt -= vel_d * DT
        points.append(make_point(t, alt, vel_d, vel_n=5 + math.sin(i * 0.1) * 2, vel_e=3))
        t += DT

    for i in range(15):
        vel_d = 25 - (i / 15.0) * 20
        alt -= vel_d * DT
        points.append(make_point(t, alt, vel_d, vel_n=5, vel_e=3))
        t += DT

    for i in range(1200):
        vel_d = 5 + math.sin(i * 0.05) * 2
        alt -= vel_d * DT
        points.append(make_point(t, max(193.0, alt), vel_d,
                                 vel_n=8 + math.sin(i * 0.1) * 3, vel_e=6 + math.cos(i * 0.08) * 2))
        t += DT

    for i in range(65):
        points.append(make_point(t, 193.0, max(0.0, 2 - i * 0.04), vel_n=max(0.0, 4 - i * 0.08)))
        t += DT

    return points


def build_full_altitude():
    """Climb to ~4000 m, 60 s freefall reaching 55 m/s, deployment, steady canopy."""
    points = []
    t = 0.0

    alt = 1000.0
    for _ in range(900):
        alt += 3.3
        points.append(make_point(t, alt, -5.0, vel_n=50, vel_e=10, h_acc=15, num_sv=9))
        t += DT

    for i in range(10):
        points.append(make_point(t, 4000.0, i * 2.0, vel_n=50 - i * 4, vel_e=10, h_acc=12))
        t += DT

    for i in range(300):
        vel_d = min(20 + i * 0.3, 55)
        alt -= vel_d * DT
        points.append(make_point(t, alt, vel_d, vel_n=5, vel_e=3))
        t += DT

    for i in range(15):
        vel_d = 55 - (i / 15.0) * 50
        alt -= vel_d * DT
        points.append(make_point(t, alt, vel_d, vel_n=5, vel_e=3))
        t += DT

    for _ in range(500):
        alt -= 6.0 * DT
        points.append(make_point(t, max(200.0, alt), 6.0, vel_n=8, vel_e=6))
        t += DT

    return points


def build_turbulent_canopy():
    """Recording starts under canopy: dives, flares and turns between 1-15 m/s."""
    points = []
    t = 0.0
    alt = 1500.0

    for i in range(600):
        if i % 100 < 10:
            vel_d = 12 + math.sin(i * 0.5) * 3
        elif i % 100 < 20:
            vel_d = 2 + math.sin(i * 0.3)
        else:
            vel_d = 5 + math.sin(i * 0.1) * 2
        alt -= vel_d * DT
        points.append(make_point(t, max(200.0, alt), vel_d,
                                 vel_n=10 + math.sin(i * 0.15) * 8, vel_e=5 + math.cos(i * 0.12) * 6))
        t += DT

    return points


def build_ground_only(n=200):
    """Logger switched on and left sitting on the ground."""
    return [make_point(i * DT, 450.0, 0.0) for i in range(n)]


@pytest.fixture
def hop_n_pop():
    return build_hop_n_pop()


@pytest.fixture
def full_altitude():
    return build_full_altitude()


@pytest.fixture
def turbulent_canopy():
    return build_turbulent_canopy()


@pytest.fixture
def ground_only():
    return build_ground_only()
