import asyncio

TABLE_HEADER = "NAME                     READY   STATUS    RESTARTS   AGE"


def pod_table(*rows):
    return "\n".join((TABLE_HEADER,) + rows) + "\n"


async def wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition was not met in time")
        await asyncio.sleep(0.001)


class FakeProcess:
    """Stands in for a kubectl port-forward process."""

    def __init__(self, cmd):
        self.cmd = cmd
        self.stdout = asyncio.StreamReader()
        self.returncode = None
        self.killed = False

    def emit(self, *lines):
        for line in lines:
            self.stdout.feed_data(f"{line}\n".encode())

    def exit(self, code=0):
        self.returncode = code
        self.stdout.feed_eof()

    def kill(self):
        self.killed = True
        if self.returncode is None:
            self.returncode = -9
            self.stdout.feed_eof()

    async def wait(self):
        return self.returncode


class FakeSpawner:
    def __init__(self):
        self.processes = []

    async def __call__(self, cmd):
        process = FakeProcess(cmd)
        self.processes.append(process)
        return process

    def for_instance(self, instance_id):
        return [p for p in self.processes if p.cmd[2] == instance_id]


class FakeKubectl:
    """Answers ``kubectl get pods`` from per-namespace tables.

    Queued ``responses`` are returned first, in order.
    """

    def __init__(self, tables=None):
        self.tables = dict(tables or {})
        self.responses = []
        self.calls = []

    async def __call__(self, cmd):
        self.calls.append(cmd)
        if self.responses:
            return self.responses.pop(0)
        namespace = cmd[cmd.index("--namespace") + 1] if "--namespace" in cmd else None
        return 0, self.tables.get(namespace, pod_table()), ""

    def queue_network_error(self, count=1, message="dial tcp 10.0.0.1:443: i/o timeout"):
        for _ in range(count):
            self.responses.append((1, "", f"Unable to connect to the server: {message}"))


class FakeSupervisor:
    def __init__(self):
        self.sessions = []
        self.terminated = []
        self.excluded = []
        self.restarts = []

    def terminate(self, code, message=None):
        self.terminated.append(code)

    def exclude(self, session):
        self.excluded.append(session)
        if session in self.sessions:
            self.sessions.remove(session)

    def request_restart(self, session):
        self.restarts.append(session)
