import logging
import socket
import threading
import time
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIServer, make_server

import psutil
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client.exposition import make_wsgi_app

logger = logging.getLogger(__name__)


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each scrape in its own thread."""
    allow_reuse_address = True
    daemon_threads = True


class PoolMetrics:
    """Prometheus metrics for pool activity, kept in an isolated registry."""

    def __init__(self, registry: CollectorRegistry = None):
        self.registry = registry or CollectorRegistry()
        self.server = None
        self.thread = None

        self.op_counter = Counter('amm_operations_total', 'Pool operations processed', ['operation', 'status'], registry=self.registry)
        self.op_latency = Histogram('amm_operation_latency_seconds', 'Time to apply a pool operation', ['operation'], registry=self.registry)
        self.reserve_x = Gauge('amm_reserve_x', 'Reserve of asset X', ['pool'], registry=self.registry)
        self.reserve_y = Gauge('amm_reserve_y', 'Reserve of asset Y', ['pool'], registry=self.registry)
        self.lp_supply = Gauge('amm_lp_supply', 'Outstanding LP tokens', ['pool'], registry=self.registry)
        self.amm_k = Gauge('amm_invariant_k', 'Constant product k', ['pool'], registry=self.registry)
        self.invariant_violations = Counter('amm_invariant_violations_total', 'Operations aborted by an invariant violation', registry=self.registry)
        self.cpu_usage = Gauge('system_cpu_percent', 'Current CPU usage percent', registry=self.registry)
        self.memory_usage = Gauge('system_memory_percent', 'Current memory usage percent', registry=self.registry)

    def record_operation(self, operation: str, status: str, latency: float):
        self.op_counter.labels(operation=operation, status=status).inc()
        self.op_latency.labels(operation=operation).observe(latency)

    def record_invariant_violation(self):
        self.invariant_violations.inc()

    def update_pool(self, pool):
        label = pool.address.hex()
        self.reserve_x.labels(pool=label).set(pool.reserve_x)
        self.reserve_y.labels(pool=label).set(pool.reserve_y)
        self.lp_supply.labels(pool=label).set(pool.lp_supply)
        # Gauges are floats; k is exported for dashboards, not for accounting
        self.amm_k.labels(pool=label).set(float(pool.k))

    def update_system(self):
        self.cpu_usage.set(psutil.cpu_percent())
        self.memory_usage.set(psutil.virtual_memory().percent)

    def get_sample(self, name: str, labels: dict = None) -> float:
        """Read a single sample value from the registry (None if absent)."""
        return self.registry.get_sample_value(name, labels or {})

    def serve(self, host: str = "127.0.0.1", port: int = 9090,
              max_retries: int = 5, retry_delay: float = 2):
        """Start the metrics HTTP endpoint in a daemon thread."""
        app = make_wsgi_app(self.registry)

        for attempt in range(max_retries):
            try:
                self.server = make_server(host, port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                self.thread = threading.Thread(target=self.server.serve_forever)
                self.thread.daemon = True
                self.thread.start()
                logger.info(f"Prometheus server started on http://{host}:{port}")
                return
            except OSError as e:
                if attempt < max_retries - 1:
                    logger.warning(f"Port {port} unavailable ({e}), retrying in {retry_delay}s (attempt {attempt+1}/{max_retries})...")
                    time.sleep(retry_delay)
                else:
                    logger.error(f"Failed to bind to port {port} after {max_retries} attempts")
                    raise

    def stop(self):
        """Stops the HTTP server."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")
