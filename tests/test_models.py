"""
Basic tests for models module.
"""

import math
import unittest

import torch
import torch.nn as nn

from pong_regression.errors import ConfigError
from pong_regression.models import (
    HIDDEN_UNITS,
    DenseRegressor,
    build_linear,
    build_one_hidden,
    build_two_hidden,
    create_model,
)


def dense_layers(model):
    return [m for m in model.modules() if isinstance(m, nn.Linear)]


class TestModelsModule(unittest.TestCase):
    """Test model creation and functionality."""

    def test_linear(self):
        """Test the linear model."""
        model = build_linear(4)
        layers = dense_layers(model)
        self.assertEqual(len(layers), 1)
        self.assertEqual(layers[0].in_features, 4)
        self.assertEqual(layers[0].out_features, 1)
        self.assertFalse(any(isinstance(m, nn.Sigmoid) for m in model.modules()))
        self.assertEqual(model.first_layer.weight.numel(), 4)

    def test_one_hidden(self):
        """Test the one-hidden-layer model."""
        model = build_one_hidden(4)
        layers = dense_layers(model)
        self.assertEqual(len(layers), 2)
        self.assertEqual(model.first_layer.in_features, 4)
        self.assertEqual(layers[0].out_features, HIDDEN_UNITS)
        self.assertEqual(layers[-1].out_features, 1)

        # Test forward pass
        batch_size = 8
        output = model(torch.randn(batch_size, 4))
        self.assertEqual(output.shape, (batch_size, 1))

    def test_two_hidden(self):
        """Test the two-hidden-layer model."""
        model = build_two_hidden(6)
        layers = dense_layers(model)
        self.assertEqual([l.out_features for l in layers], [HIDDEN_UNITS, HIDDEN_UNITS, 1])
        self.assertEqual(sum(isinstance(m, nn.Sigmoid) for m in model.modules()), 2)
        self.assertEqual(model(torch.randn(3, 6)).shape, (3, 1))

    def test_initialization(self):
        """Test weight and bias initialization."""
        torch.manual_seed(0)
        model = build_two_hidden(4)
        for layer in dense_layers(model):
            std = math.sqrt(1.0 / layer.in_features)
            self.assertTrue(torch.all(layer.weight.abs() <= 2 * std + 1e-6))
            self.assertTrue(torch.all(layer.bias == 0))
            self.assertLess(abs(layer.weight.mean().item()), std)

    def test_create_model(self):
        """Test creating models by kind."""
        self.assertEqual(create_model('linear', 4).hidden_dims, [])
        self.assertEqual(create_model('one_hidden', 4).hidden_dims, [HIDDEN_UNITS])
        self.assertEqual(create_model('two_hidden', 4).hidden_dims, [HIDDEN_UNITS, HIDDEN_UNITS])

        # Test invalid model type
        with self.assertRaises(ConfigError):
            create_model('invalid_type', 4)

    def test_invalid_num_features(self):
        """Test invalid feature counts."""
        for bad in (0, -3, 2.5, True, "4"):
            with self.assertRaises(ConfigError):
                build_one_hidden(bad)

    def test_config_error_is_value_error(self):
        """Test ConfigError is a ValueError."""
        with self.assertRaises(ValueError):
            DenseRegressor(4, hidden_dims=(0,))

    def test_get_num_parameters(self):
        """Test parameter counting and summary."""
        model = build_one_hidden(4)
        expected = 4 * HIDDEN_UNITS + HIDDEN_UNITS + HIDDEN_UNITS + 1
        self.assertEqual(model.get_num_parameters(), expected)
        self.assertIn(f"Total params: {expected}", model.summary())


if __name__ == '__main__':
    unittest.main()
