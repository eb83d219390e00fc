"""
Hessian-free optimizer for the window network.

Each iteration solves (G + lambda I) d = -g by conjugate gradient, where G
is the Gauss-Newton curvature of the cost and g its gradient, both taken
over the full training set. The damping lambda follows the reduction
ratio rho = actual / predicted:
- rho < 1/4: lambda *= 3/2
- rho > 3/4: lambda *= 2/3

Gradients and curvature-vector products are summed over sub-batches
evaluated on a bounded thread pool. Parameters are passed explicitly
(NetworkModel.forward_with), so sub-batches share nothing mutable.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List

import torch

from .config import NetworkFitConfig
from .models import NetworkModel

logger = logging.getLogger(__name__)

Params = List[torch.Tensor]
Cost = Callable[[torch.Tensor, torch.Tensor], torch.Tensor]

DAMPING_UP = 3.0 / 2.0
DAMPING_DOWN = 2.0 / 3.0
CG_DECAY = 0.95


def squared_error_sum(output: torch.Tensor, target: torch.Tensor) -> torch.Tensor:
    """Sum of squared differences; divided by element count it is the MSE."""
    return ((output - target) ** 2).sum()


def adjust_damping(damping: float, rho: float) -> float:
    """Levenberg-Marquardt style damping update from the reduction ratio."""
    if rho < 0.25:
        return damping * DAMPING_UP
    if rho > 0.75:
        return damping * DAMPING_DOWN
    return damping


def _dot(a: Params, b: Params) -> float:
    return float(sum((x * y).sum() for x, y in zip(a, b)))


def _axpy(alpha: float, x: Params, y: Params) -> Params:
    """alpha * x + y"""
    return [alpha * xi + yi for xi, yi in zip(x, y)]


def _scale(alpha: float, x: Params) -> Params:
    return [alpha * xi for xi in x]


@dataclass
class IterationStats:
    """Outcome of one optimizer iteration."""
    iteration: int
    cost: float
    damping: float
    rho: float
    accepted: bool


class HessianFreeOptimizer:
    """
    Full-batch second-order trainer for a NetworkModel.

    Example:
        opt = HessianFreeOptimizer(model, config)
        history = opt.fit(inputs, targets)   # updates model in place
    """

    def __init__(self, model: NetworkModel, config: NetworkFitConfig, cost: Cost = squared_error_sum):
        self.model = model
        self.config = config
        self.cost = cost
        self.damping = config.damping
        self._pool: ThreadPoolExecutor | None = None
        self._batches: list[tuple[torch.Tensor, torch.Tensor]] = []
        self._count = 1

    # ---- sub-batch evaluation ----

    def _map(self, fn) -> list:
        """Run fn over every sub-batch; returns once all have finished."""
        if self._pool is None:
            return [fn(*batch) for batch in self._batches]
        return list(self._pool.map(lambda batch: fn(*batch), self._batches))

    def _leaves(self, params: Params) -> Params:
        return [p.detach().requires_grad_(True) for p in params]

    def _batch_cost(self, params: Params, x: torch.Tensor, y: torch.Tensor) -> float:
        with torch.no_grad():
            return float(self.cost(self.model.forward_with(params, x), y))

    def _batch_gradient(self, params: Params, x: torch.Tensor, y: torch.Tensor):
        leaves = self._leaves(params)
        loss = self.cost(self.model.forward_with(leaves, x), y)
        grads = torch.autograd.grad(loss, leaves)
        return float(loss.detach()), [g.detach() for g in grads]

    def _batch_gn_product(self, params: Params, vec: Params, x: torch.Tensor, y: torch.Tensor) -> Params:
        leaves = self._leaves(params)
        out = self.model.forward_with(leaves, x)

        # J v by differentiating the vector-Jacobian product w.r.t. a dummy cotangent
        u = torch.zeros_like(out, requires_grad=True)
        vjp = torch.autograd.grad(out, leaves, grad_outputs=u, create_graph=True)
        (jv,) = torch.autograd.grad(vjp, u, grad_outputs=vec, retain_graph=True)

        # Cost Hessian w.r.t. the output, applied to J v
        out_leaf = out.detach().requires_grad_(True)
        (cost_grad,) = torch.autograd.grad(self.cost(out_leaf, y), out_leaf, create_graph=True)
        (hjv,) = torch.autograd.grad(cost_grad, out_leaf, grad_outputs=jv.detach())

        gv = torch.autograd.grad(out, leaves, grad_outputs=hjv.detach())
        return [g.detach() for g in gv]

    # ---- full-batch quantities ----

    def total_cost(self, params: Params) -> float:
        return sum(self._map(lambda x, y: self._batch_cost(params, x, y))) / self._count

    def gradient(self, params: Params) -> tuple[float, Params]:
        results = self._map(lambda x, y: self._batch_gradient(params, x, y))
        cost = sum(r[0] for r in results) / self._count
        grad = [sum(parts) / self._count for parts in zip(*(r[1] for r in results))]
        return cost, grad

    def gn_product(self, params: Params, vec: Params) -> Params:
        results = self._map(lambda x, y: self._batch_gn_product(params, vec, x, y))
        return [sum(parts) / self._count for parts in zip(*results)]

    def conjugate_gradient(self, params: Params, grad: Params, init: Params) -> Params:
        """Approximately solve (G + damping I) d = -grad, starting from init."""
        def damped(v: Params) -> Params:
            return _axpy(self.damping, v, self.gn_product(params, v))

        x = init
        r = _axpy(-1.0, damped(x), _scale(-1.0, grad))
        p = r
        rs = _dot(r, r)
        tol = 1e-10 * max(_dot(grad, grad), 1e-30)
        for _ in range(self.config.cg_iterations):
            if rs <= tol:
                break
            ap = damped(p)
            pap = _dot(p, ap)
            if pap <= 0:
                break
            alpha = rs / pap
            x = _axpy(alpha, p, x)
            r = _axpy(-alpha, ap, r)
            rs_new = _dot(r, r)
            p = _axpy(rs_new / rs, p, r)
            rs = rs_new
        return x

    # ---- training loop ----

    def bind(self, inputs: torch.Tensor, targets: torch.Tensor):
        """Split the training set into sub-batches of at most max_sub_batch samples."""
        n = self.config.max_sub_batch
        self._batches = [(inputs[i:i + n], targets[i:i + n]) for i in range(0, len(inputs), n)]
        self._count = max(targets.numel(), 1)

    def fit(self, inputs: torch.Tensor, targets: torch.Tensor) -> list[IterationStats]:
        """
        Train until the cost plateaus.

        Args:
            inputs: N x W source vectors
            targets: N x W target vectors

        Returns:
            Per-iteration statistics
        """
        self.bind(inputs, targets)
        with ThreadPoolExecutor(max_workers=self.config.concurrency) as pool:
            self._pool = pool
            try:
                params, history = self._train(self.model.parameter_list())
            finally:
                self._pool = None

        self.model.load_parameter_list(params)
        return history

    def _train(self, params: Params) -> tuple[Params, list[IterationStats]]:
        cfg = self.config
        direction = [torch.zeros_like(p) for p in params]
        history = []
        rejections = 0

        cost, grad = self.gradient(params)
        logger.info("Initial cost %.6g", cost)

        for it in range(1, cfg.max_iterations + 1):
            direction = self.conjugate_gradient(params, grad, _scale(CG_DECAY, direction))

            gd = self.gn_product(params, direction)
            predicted = _dot(grad, direction) + 0.5 * _dot(direction, gd)
            candidate = _axpy(1.0, direction, params)
            new_cost = self.total_cost(candidate)
            actual = new_cost - cost
            rho = actual / predicted if predicted < 0 else 0.0

            self.damping = adjust_damping(self.damping, rho)
            accepted = actual < 0
            improvement = 0.0
            if accepted:
                improvement = -actual / max(cost, 1e-30)
                params = candidate
                rejections = 0
                cost, grad = self.gradient(params)
            else:
                direction = [torch.zeros_like(p) for p in params]
                rejections += 1

            history.append(IterationStats(it, cost, self.damping, rho, accepted))
            logger.info(
                "Iteration %d: cost %.6g (rho %.3f, damping %.4g%s)",
                it, cost, rho, self.damping, "" if accepted else ", step rejected",
            )

            if cost == 0.0:
                break
            if accepted and it >= cfg.min_iterations and improvement < cfg.tolerance:
                break
            if it >= cfg.min_iterations and rejections >= cfg.max_rejections:
                logger.info("Stopping after %d rejected steps", rejections)
                break

        return params, history
