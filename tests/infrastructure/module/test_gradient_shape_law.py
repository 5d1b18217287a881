import unittest

import numpy as np

from quantgraph.domain import BackwardMode
from quantgraph.infrastructure import (
    FFN,
    Bias,
    Dense,
    LeakyReLU,
    Linear,
    MatMulNBits,
    ReLU,
    Sigmoid,
    SimpleRNN,
    SwiGLU,
    Tanh,
)
from quantgraph.infrastructure.compute import NumpyEngine
from quantgraph.infrastructure.module import default_registry


def _node_cases(engine, rng):
    """Return ``op_type -> [(node, input shapes), ...]`` for every built-in node."""
    packed = rng.integers(0, 256, size=(3, 2), dtype=np.uint8)
    return {
        "Linear": [(Linear("fc", engine, 3, 2, rng=rng), [(4, 3)])],
        "Bias": [(Bias("b", engine, 3), [(4, 3)])],
        "Dense": [(Dense("d", engine, 3, 2, activation="Tanh", rng=rng), [(4, 3)])],
        "FFN": [(FFN("ffn", engine, 3, 4, 2, rng=rng), [(4, 3)])],
        "MatMulNBits": [(MatMulNBits("q", engine, packed, [0.5]), [(4, 3)])],
        "SimpleRNN": [
            (SimpleRNN("rnn", engine, 3, 2, rng=rng), [(4, 3)]),
            (SimpleRNN("rnn", engine, 3, 2, rng=rng), [(4, 3), (4, 2)]),
        ],
        "Tanh": [(Tanh(engine), [(4, 3)])],
        "Sigmoid": [(Sigmoid(engine), [(4, 3)])],
        "ReLU": [(ReLU(engine), [(4, 3)])],
        "LeakyReLU": [(LeakyReLU(engine), [(4, 3)])],
        "SwiGLU": [(SwiGLU(engine), [(4, 6)])],
    }


class TestGradientShapeLaw(unittest.TestCase):
    def setUp(self):
        self.engine = NumpyEngine("float64")
        self.rng = np.random.default_rng(13)
        self.cases = _node_cases(self.engine, self.rng)

    def test_every_registered_type_is_covered(self):
        self.assertEqual(set(self.cases), set(default_registry().op_types()))

    def test_one_gradient_per_input_shaped_like_it(self):
        for op_type, cases in self.cases.items():
            for node, shapes in cases:
                inputs = [
                    self.engine.from_numpy(self.rng.standard_normal(s)) for s in shapes
                ]
                y = node.forward(*inputs)
                dy = self.engine.from_numpy(self.rng.standard_normal(y.shape))
                for mode in BackwardMode:
                    with self.subTest(op=op_type, arity=len(shapes), mode=mode.name):
                        grads = node.backward(mode, dy)
                        self.assertEqual(len(grads), len(inputs))
                        for g, x in zip(grads, inputs):
                            self.assertEqual(tuple(g.shape), tuple(x.shape))
                            self.assertEqual(g.dtype, x.dtype)


if __name__ == "__main__":
    unittest.main()
