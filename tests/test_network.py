"""Nonlinear fitter and Hessian-free optimizer tests."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
import torch

from voicechange import (
    HessianFreeOptimizer,
    InsufficientDataError,
    NetworkFitConfig,
    NetworkModel,
    NonlinearFitter,
    RawVectorizer,
    build_training_pairs,
)
from voicechange.hessfree import adjust_damping
from voicechange.network import network_cost


def small_config(**kwargs):
    params = dict(
        window_size=8,
        hidden_sizes=(6, 5),
        max_sub_batch=4,
        concurrency=2,
        min_iterations=5,
        max_iterations=15,
        cg_iterations=20,
        seed=0,
    )
    params.update(kwargs)
    return NetworkFitConfig(**params)


def test_default_layer_shapes():
    cfg = NetworkFitConfig()
    assert cfg.layer_sizes == (1024, 300, 500, 1024)

    model = NetworkModel(cfg.layer_sizes)
    kinds = [type(m).__name__ for m in model.net]
    assert kinds == ["Linear", "Tanh", "Linear", "Tanh", "Linear"]
    assert model.input_size == 1024


def test_config_validation():
    with pytest.raises(ValueError):
        NetworkFitConfig(min_iterations=10, max_iterations=5)
    with pytest.raises(ValueError):
        NetworkFitConfig(concurrency=0)
    with pytest.raises(ValueError):
        NetworkFitConfig(max_rejections=0)


@pytest.mark.parametrize("damping,rho,expected", [
    (0.1, 0.1, 0.15),
    (0.1, -2.0, 0.15),
    (0.3, 0.9, 0.2),
    (0.1, 0.5, 0.1),
])
def test_adjust_damping(damping, rho, expected):
    assert adjust_damping(damping, rho) == pytest.approx(expected)


def _tiny_problem():
    torch.manual_seed(0)
    model = NetworkModel([3, 2, 3])
    model.net.double()
    x = torch.randn(5, 3, dtype=torch.float64)
    y = torch.randn(5, 3, dtype=torch.float64)
    return model, x, y


def _jacobian(model, params, x):
    jac = torch.autograd.functional.jacobian(
        lambda *ps: model.forward_with(ps, x).reshape(-1), tuple(params)
    )
    return torch.cat([j.reshape(j.shape[0], -1) for j in jac], dim=1)


def test_gradient_and_curvature_match_explicit_jacobian():
    model, x, y = _tiny_problem()
    opt = HessianFreeOptimizer(model, small_config(window_size=3, hidden_sizes=(2,), max_sub_batch=2))
    opt.bind(x, y)
    params = model.parameter_list()

    jac = _jacobian(model, params, x)
    residual = (model.forward_with(params, x) - y).reshape(-1)
    n = y.numel()

    cost, grad = opt.gradient(params)
    assert cost == pytest.approx(float((residual ** 2).sum() / n))
    flat_grad = torch.cat([g.reshape(-1) for g in grad])
    torch.testing.assert_close(flat_grad, 2.0 / n * jac.T @ residual)

    v = [torch.randn_like(p) for p in params]
    flat_v = torch.cat([t.reshape(-1) for t in v])
    gv = torch.cat([t.reshape(-1) for t in opt.gn_product(params, v)])
    torch.testing.assert_close(gv, 2.0 / n * jac.T @ (jac @ flat_v))


def test_fit_reduces_cost(source_sine, target_sine):
    cfg = small_config()
    pairs = build_training_pairs(source_sine, target_sine, RawVectorizer(), 8)
    assert len(pairs) >= 8

    fitter = NonlinearFitter(cfg)
    initial = network_cost(fitter.init_model(), pairs)
    model = fitter.fit(pairs)

    assert network_cost(model, pairs) < initial
    assert len(fitter.history) >= cfg.min_iterations
    assert any(step.accepted for step in fitter.history)


def test_fitted_network_is_frozen(source_sine, target_sine):
    pairs = build_training_pairs(source_sine, target_sine, RawVectorizer(), 8)
    model = NonlinearFitter(small_config(max_iterations=5)).fit(pairs)

    assert all(not p.requires_grad for p in model.net.parameters())
    assert not model.net.training

    v = pairs[0].source
    first = model.apply(v)
    assert first.shape == (8,)
    for _ in range(3):
        np.testing.assert_array_equal(model.apply(v), first)


def test_seed_makes_fit_reproducible(source_sine, target_sine):
    pairs = build_training_pairs(source_sine, target_sine, RawVectorizer(), 8)
    a = NonlinearFitter(small_config(max_iterations=5)).fit(pairs)
    b = NonlinearFitter(small_config(max_iterations=5)).fit(pairs)

    for pa, pb in zip(a.net.parameters(), b.net.parameters()):
        torch.testing.assert_close(pa, pb)


def test_no_pairs():
    with pytest.raises(InsufficientDataError):
        NonlinearFitter(small_config()).fit([])


def test_thread_pool_matches_serial_evaluation():
    model, x, y = _tiny_problem()
    opt = HessianFreeOptimizer(model, small_config(window_size=3, hidden_sizes=(2,), max_sub_batch=2))
    opt.bind(x, y)
    assert len(opt._batches) == 3
    params = model.parameter_list()
    v = [torch.randn_like(p) for p in params]

    serial_cost, serial_grad = opt.gradient(params)
    serial_gv = opt.gn_product(params, v)

    with ThreadPoolExecutor(max_workers=2) as pool:
        opt._pool = pool
        try:
            pooled_cost, pooled_grad = opt.gradient(params)
            pooled_gv = opt.gn_product(params, v)
        finally:
            opt._pool = None

    assert pooled_cost == pytest.approx(serial_cost)
    for a, b in zip(pooled_grad, serial_grad):
        torch.testing.assert_close(a, b)
    for a, b in zip(pooled_gv, serial_gv):
        torch.testing.assert_close(a, b)


@pytest.mark.parametrize("min_iterations,max_rejections,expected", [
    (2, 3, 3),
    (5, 2, 5),
])
def test_stops_after_repeated_rejections(monkeypatch, min_iterations, max_rejections, expected):
    model, x, y = _tiny_problem()
    before = [p.detach().clone() for p in model.parameter_list()]
    cfg = small_config(
        window_size=3, hidden_sizes=(2,), max_sub_batch=2,
        min_iterations=min_iterations, max_iterations=50, max_rejections=max_rejections,
    )
    monkeypatch.setattr(HessianFreeOptimizer, "total_cost", lambda self, params: float("inf"))

    history = HessianFreeOptimizer(model, cfg).fit(x, y)

    assert len(history) == expected
    assert not any(step.accepted for step in history)
    for p, q in zip(model.parameter_list(), before):
        torch.testing.assert_close(p.detach(), q)
