import numpy as np
import pytest

from layosc.backend import MeasuredBuffer, StateVectorLayer
from layosc.types import OpId, Operation, OpShape


def run(layer, build):
    """Build a batch with `build(ops)`, run it, and return the result buffer."""
    ops = layer.opsvec()
    ops.initialize()
    build(ops)
    buf = layer.make_buffer()
    layer.send_receive(ops, buf)
    return buf


@pytest.fixture
def layer():
    return StateVectorLayer(3, seed=123)


class TestGates:
    def test_zero_state_measures_zero(self, layer):
        buf = run(layer, lambda ops: ops.measure(0, 0))
        assert buf.get(0) is False

    def test_x_flips(self, layer):
        def build(ops):
            ops.x(1)
            ops.measure(1, 1)
            ops.measure(0, 0)

        buf = run(layer, build)
        assert buf.get(1) is True
        assert buf.get(0) is False

    def test_y_flips(self, layer):
        def build(ops):
            ops.y(2)
            ops.measure(2, 2)

        assert run(layer, build).get(2) is True

    @pytest.mark.parametrize(
        "phases",
        [("s", "s"), ("t", "t", "t", "t"), ("z",), ("sdg", "sdg")],
        ids=["SS", "TTTT", "Z", "SdgSdg"],
    )
    def test_phase_gates_between_hadamards(self, layer, phases):
        # H Z H = X
        def build(ops):
            ops.h(0)
            for name in phases:
                getattr(ops, name)(0)
            ops.h(0)
            ops.measure(0, 0)

        assert run(layer, build).get(0) is True

    def test_inverse_phases_cancel(self, layer):
        def build(ops):
            ops.h(0)
            ops.t(0)
            ops.tdg(0)
            ops.s(0)
            ops.sdg(0)
            ops.h(0)
            ops.measure(0, 0)

        assert run(layer, build).get(0) is False

    def test_cx(self, layer):
        def build(ops):
            ops.x(0)
            ops.cx(0, 2)
            ops.cx(1, 0)
            for q in range(3):
                ops.measure(q, q)

        buf = run(layer, build)
        assert buf.bits.tolist() == [True, False, True]

    def test_bell_pair_correlated(self):
        layer = StateVectorLayer(2, seed=7)
        outcomes = set()
        for _ in range(30):

            def build(ops):
                ops.h(0)
                ops.cx(0, 1)
                ops.measure(0, 0)
                ops.measure(1, 1)

            buf = run(layer, build)
            assert buf.get(0) == buf.get(1)
            outcomes.add(buf.get(0))
        assert outcomes == {False, True}

    def test_reset(self, layer):
        def build(ops):
            ops.x(0)
            ops.reset(0)
            ops.measure(0, 0)

        assert run(layer, build).get(0) is False

    def test_initialize_clears_state(self, layer):
        run(layer, lambda ops: ops.x(0))
        buf = run(layer, lambda ops: ops.measure(0, 0))
        assert buf.get(0) is False

    def test_probability_one(self, layer):
        layer.send([Operation.q(OpId.H, 1)])
        assert layer.probability_one(1) == pytest.approx(0.5)
        assert layer.probability_one(0) == pytest.approx(0.0)
        assert np.linalg.norm(layer.state) == pytest.approx(1.0)


class TestMeasurement:
    def test_seeded_runs_reproduce(self):
        def shots(seed):
            layer = StateVectorLayer(1, seed=seed)
            bits = []
            for _ in range(20):

                def build(ops):
                    ops.h(0)
                    ops.measure(0, 0)

                bits.append(run(layer, build).get(0))
            return bits

        assert shots(123) == shots(123)

    def test_superposition_statistics(self):
        layer = StateVectorLayer(1, seed=1)
        ones = 0
        for _ in range(400):

            def build(ops):
                ops.h(0)
                ops.measure(0, 0)

            ones += run(layer, build).get(0)
        assert 120 < ones < 280

    def test_measurement_collapses(self, layer):
        def build(ops):
            ops.h(0)
            ops.measure(0, 0)
            ops.measure(0, 1)

        buf = run(layer, build)
        assert buf.get(0) == buf.get(1)

    def test_receive_clears_results(self, layer):
        ops = layer.opsvec()
        ops.x(0)
        ops.measure(0, 0)
        layer.send(ops)
        buf = layer.make_buffer()
        layer.receive(buf)
        assert buf.get(0)

        fresh = MeasuredBuffer(3)
        layer.receive(fresh)
        assert not fresh.bits.any()


class TestErrors:
    def test_qubit_out_of_range(self, layer):
        with pytest.raises(ValueError, match="out of range"):
            layer.send([Operation.q(OpId.X, 3)])

    def test_cx_same_qubit(self, layer):
        with pytest.raises(ValueError):
            layer.send([Operation.qq(OpId.CX, 1, 1)])

    def test_malformed_operation(self, layer):
        with pytest.raises(ValueError, match="Malformed"):
            layer.send([Operation(OpId.X, OpShape.QQ, (0, 1))])

    def test_opsvec_rejects_wrong_shape(self, layer):
        ops = layer.opsvec()
        with pytest.raises(ValueError):
            ops.gate(OpId.CX, 0)
        with pytest.raises(ValueError):
            ops.gate(OpId.INIT, 0)

    def test_register_size(self):
        with pytest.raises(ValueError):
            StateVectorLayer(0)
