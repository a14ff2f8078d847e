"""Tests for propagation models."""

import math

import numpy as np
import pytest

from indoor_lora_sim.core.building import WallType, generate_buildings
from indoor_lora_sim.core.config import ScenarioConfig
from indoor_lora_sim.core.device import Device, Gateway
from indoor_lora_sim.propagation.model import PropagationModel, build_propagation_model
from indoor_lora_sim.propagation.pathloss import (
    LogDistanceLoss,
    free_space_path_loss,
    log_distance_path_loss,
)
from indoor_lora_sim.propagation.penetration import (
    BuildingPenetrationLoss,
    FloorPenetrationLoss,
    boundary_crossings,
)
from indoor_lora_sim.propagation.shadowing import CorrelatedShadowing


@pytest.fixture
def buildings():
    return generate_buildings(3, 100, 100, 7.5, 7.5, 21, 10, 10, 7,
                              "concrete_with_windows", "commercial", count=2)


class TestFSPL:
    def test_1km_868mhz(self):
        # FSPL at 1 km, 868 MHz ≈ 91.2 dB
        pl = float(free_space_path_loss(1000.0, 868.0))
        assert 90.0 < pl < 93.0

    def test_increases_with_distance(self):
        pl1 = float(free_space_path_loss(100.0, 868.0))
        pl2 = float(free_space_path_loss(1000.0, 868.0))
        assert pl2 > pl1


class TestLogDistance:
    def test_reference_loss_at_d0(self):
        assert float(log_distance_path_loss(1.0)) == pytest.approx(42.0)

    def test_ten_metres(self):
        assert float(log_distance_path_loss(10.0, n=2.3)) == pytest.approx(65.0)

    def test_clipped_below_d0(self):
        assert float(log_distance_path_loss(0.2)) == pytest.approx(42.0)

    def test_higher_exponent_more_loss(self):
        pl_low = float(log_distance_path_loss(500.0, n=2.0))
        pl_high = float(log_distance_path_loss(500.0, n=3.5))
        assert pl_high > pl_low

    def test_stage_uses_3d_distance(self):
        stage = LogDistanceLoss()
        assert stage((0, 0, 0), (6, 0, 8)) == pytest.approx(65.0)

    def test_from_frequency(self):
        stage = LogDistanceLoss.from_frequency(868.0)
        assert stage.reference_loss == pytest.approx(float(free_space_path_loss(1.0, 868.0)))
        assert 31.0 < stage.reference_loss < 31.5

    def test_monotonic_without_shadowing(self, buildings):
        model = PropagationModel([LogDistanceLoss(), BuildingPenetrationLoss()])
        gw = (50.0, 50.0, 23.0)
        losses = [model.path_loss(gw, (x, 50.0, 1.2), buildings) for x in np.arange(51.0, 400.0, 2.5)]
        assert np.all(np.diff(losses) >= 0)


class TestShadowing:
    def test_deterministic_per_seed(self):
        a = CorrelatedShadowing(seed=3)
        b = CorrelatedShadowing(seed=3)
        assert a.at(12.5, 80.0) == b.at(12.5, 80.0)

    def test_seed_changes_field(self):
        assert CorrelatedShadowing(seed=1).at(10, 10) != CorrelatedShadowing(seed=2).at(10, 10)

    def test_order_independent(self):
        a = CorrelatedShadowing(seed=5)
        b = CorrelatedShadowing(seed=5)
        first = (a.at(300, -40), a.at(5, 5))
        second = (b.at(5, 5), b.at(300, -40))
        assert first == (second[1], second[0])

    def test_symmetric_link(self):
        s = CorrelatedShadowing(seed=7)
        tx, rx = (5.0, 5.0, 1.2), (50.0, 50.0, 23.0)
        assert s(tx, rx) == pytest.approx(s(rx, tx))

    def test_spatially_correlated(self):
        s = CorrelatedShadowing(sigma_db=7.8, correlation_distance=110.0, seed=11)
        assert abs(s.at(40.0, 40.0) - s.at(41.0, 40.0)) < 1.0

    def test_zero_mean_and_sigma(self):
        s = CorrelatedShadowing(sigma_db=7.8, correlation_distance=110.0, seed=1)
        values = np.array([s.at(110.0 * i, 110.0 * j) for i in range(40) for j in range(40)])
        assert abs(values.mean()) < 1.0
        assert values.std() == pytest.approx(7.8, abs=0.8)

    def test_variance_preserved_between_nodes(self):
        s = CorrelatedShadowing(sigma_db=4.0, correlation_distance=10.0, seed=2)
        values = np.array([s.at(10.0 * i + 5.0, 10.0 * j + 5.0) for i in range(40) for j in range(40)])
        assert values.std() == pytest.approx(4.0, abs=0.6)

    def test_bad_distance(self):
        with pytest.raises(ValueError):
            CorrelatedShadowing(correlation_distance=0)


class TestCrossings:
    def test_one_end_inside(self, buildings):
        assert boundary_crossings((5, 5, 1.2), (103, 50, 1.2), buildings[0]) == 1

    def test_through_building(self, buildings):
        assert boundary_crossings((-10, 50, 1), (105, 50, 1), buildings[0]) == 2

    def test_both_inside(self, buildings):
        assert boundary_crossings((5, 5, 1.2), (95, 95, 19.2), buildings[0]) == 0

    def test_miss(self, buildings):
        assert boundary_crossings((-10, -10, 1), (-10, 200, 1), buildings[0]) == 0

    def test_over_the_roof(self, buildings):
        assert boundary_crossings((-10, 50, 30), (110, 50, 30), buildings[0]) == 0

    def test_gateway_above_roof(self, buildings):
        assert boundary_crossings((50, 50, 23), (5, 5, 1.2), buildings[0]) == 1


class TestPenetration:
    def test_single_wall(self, buildings):
        loss = BuildingPenetrationLoss()((5, 5, 1.2), (50, 50, 23), buildings)
        assert loss == pytest.approx(7.0)

    def test_two_buildings_cumulative(self, buildings):
        loss = BuildingPenetrationLoss()((5, 50, 1.2), (150, 50, 1.2), buildings)
        assert loss == pytest.approx(14.0)

    def test_outdoor_link(self, buildings):
        assert BuildingPenetrationLoss()((-50, -50, 1), (-50, 300, 1), buildings) == 0.0

    def test_override_table(self, buildings):
        stage = BuildingPenetrationLoss({WallType.CONCRETE_WITH_WINDOWS: 10.0})
        assert stage((5, 5, 1.2), (50, 50, 23), buildings) == pytest.approx(10.0)

    def test_floor_loss_same_building(self, buildings):
        assert FloorPenetrationLoss()((5, 5, 1.2), (5, 5, 7.2), buildings) == pytest.approx(9.0)

    def test_floor_loss_other_building(self, buildings):
        assert FloorPenetrationLoss()((5, 5, 1.2), (150, 5, 7.2), buildings) == 0.0


class TestModel:
    def test_stages_add_up(self, buildings):
        model = PropagationModel([LogDistanceLoss(), BuildingPenetrationLoss()])
        tx, rx = (5.0, 5.0, 1.2), (50.0, 50.0, 23.0)
        expected = LogDistanceLoss()(tx, rx) + 7.0
        assert model.path_loss(tx, rx, buildings) == pytest.approx(expected)

    def test_received_power(self):
        model = PropagationModel([LogDistanceLoss()])
        assert model.received_power(14.0, (0, 0, 0), (10, 0, 0)) == pytest.approx(14.0 - 65.0)

    def test_far_link_finite(self, buildings):
        model = PropagationModel([LogDistanceLoss(), CorrelatedShadowing(), BuildingPenetrationLoss()])
        power = model.received_power(14.0, (0, 0, 0), (1e6, 1e6, 0), buildings)
        assert math.isfinite(power)
        assert power < -130.0

    def test_needs_a_stage(self):
        with pytest.raises(ValueError):
            PropagationModel([])

    def test_link_matrix(self, buildings):
        model = PropagationModel([LogDistanceLoss()])
        devices = [Device(0, 10, 0, 0), Device(1, 100, 0, 0)]
        gateways = [Gateway(0, 0, 0, 0), Gateway(1, 0, 10, 0)]
        rx = model.link_matrix(devices, gateways, buildings, 14.0)
        assert rx.shape == (2, 2)
        assert rx[0, 0] == pytest.approx(-51.0)
        assert rx[1, 0] < rx[0, 0]


class TestBuild:
    def stage_types(self, **overrides):
        model = build_propagation_model(ScenarioConfig.create(**overrides))
        return [type(s).__name__ for s in model.stages]

    def test_realistic_default(self):
        assert self.stage_types() == ["LogDistanceLoss", "CorrelatedShadowing", "BuildingPenetrationLoss"]

    def test_distance_only(self):
        assert self.stage_types(realistic_channel_model=False) == ["LogDistanceLoss"]

    def test_skip_shadowing(self):
        assert self.stage_types(shadowing=False) == ["LogDistanceLoss", "BuildingPenetrationLoss"]

    def test_skip_penetration(self):
        assert self.stage_types(building_penetration=False) == ["LogDistanceLoss", "CorrelatedShadowing"]

    def test_floor_stage(self):
        assert self.stage_types(floor_penetration=True)[-1] == "FloorPenetrationLoss"

    def test_parameters_forwarded(self):
        model = build_propagation_model(
            ScenarioConfig.create(path_loss_exponent=3.0, reference_loss=40.0, realistic_channel_model=False)
        )
        assert model.path_loss((0, 0, 0), (10, 0, 0)) == pytest.approx(70.0)
