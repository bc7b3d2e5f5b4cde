# core/threads.py
"""Qt worker pool for the presentation layer, so corpus training does not
block the event loop. Nothing in the CLI uses it."""
import logging

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from typequest.services.markov import MarkovTextGenerator

log = logging.getLogger(__name__)


class CorpusTrainWorkerSignals(QObject):
    trained = Signal(int)  # number of chain states
    failed = Signal(str)


class CorpusTrainWorker(QRunnable):
    """Reads a corpus file and retrains a generator off the UI thread."""

    def __init__(self, generator: MarkovTextGenerator, path: str):
        super().__init__()
        self.generator = generator
        self.path = path
        self.signals = CorpusTrainWorkerSignals()

    def run(self):
        try:
            with open(self.path, "r", encoding="utf-8", errors="ignore") as f:
                data = f.read()
        except OSError as e:
            log.warning("Corpus load failed for %s: %s", self.path, e)
            self.signals.failed.emit(str(e))
            return
        self.generator.train(data)
        self.signals.trained.emit(len(self.generator.model.transitions))


class Workers:
    pool = QThreadPool.globalInstance()

    @classmethod
    def train_corpus(cls, generator: MarkovTextGenerator, path: str) -> CorpusTrainWorker:
        worker = CorpusTrainWorker(generator, path)
        cls.pool.start(worker)
        return worker
