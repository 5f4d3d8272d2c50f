# flasharb/executor.py
"""
Arbitrage Execution Driver
Polls every combination each tick, picks the best traversal and submits the
flash arbitrage when the net profit clears the configured minimum.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from flasharb.combinations import TokenCombination
from flasharb.config import BotConfig
from flasharb.errors import DataFetchError, SubmissionError, SubmissionErrorKind
from flasharb.path_selector import PathResult, candidate_orderings, select_best_path
from flasharb.profit import gas_fee_in_token, to_accounting_units
from flasharb.tokens import get_decimals

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS & DATA CLASSES
# =============================================================================

class DriverState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    SUBMITTING = "submitting"


@dataclass
class ExecutionResult:
    """Outcome of one combination in one tick"""
    symbols: str
    state: DriverState
    path: Optional[PathResult] = None
    profit_usd: Decimal = Decimal(0)
    submitted: bool = False
    tx_hash: Optional[str] = None
    error: str = ""


# =============================================================================
# DRIVER
# =============================================================================

class ArbitrageDriver:
    def __init__(self, config: BotConfig, contract, fetcher, oracle):
        self.config = config
        self.contract = contract
        self.fetcher = fetcher
        self.oracle = oracle
        self._submit_lock = asyncio.Lock()
        self._running = False
        self.tick_count = 0

    def stop(self):
        self._running = False

    async def evaluate(self, combo: TokenCombination) -> ExecutionResult:
        """FETCHING -> EVALUATING; returns the candidate path if it clears the minimum"""
        hops = await self.fetcher.fetch(combo)
        if hops is None:
            return ExecutionResult(combo.symbols, DriverState.IDLE, error="unusable hop")

        base = combo.base_token
        decimals = get_decimals(base, self.config.network)
        try:
            native_price = await self.oracle.native_price_usd()
        except DataFetchError as e:
            logger.warning(f"{combo.symbols}: {e}")
            return ExecutionResult(combo.symbols, DriverState.IDLE, error=str(e))

        gas_fee = gas_fee_in_token(self.config, base, decimals)
        path = select_best_path(candidate_orderings(combo, hops), self.config.borrow_search, gas_fee)
        if path is None:
            logger.debug(f"{combo.symbols}: no profitable ordering")
            return ExecutionResult(combo.symbols, DriverState.IDLE)

        profit_usd = to_accounting_units(path.profit, path.base_token, self.config, decimals, native_price)
        if profit_usd <= self.config.minimum_profit:
            logger.debug(f"{combo.symbols}: profit ${profit_usd:.4f} below ${self.config.minimum_profit}")
            return ExecutionResult(combo.symbols, DriverState.IDLE, path=path, profit_usd=profit_usd)

        return ExecutionResult(combo.symbols, DriverState.EVALUATING, path=path, profit_usd=profit_usd)

    async def submit(self, result: ExecutionResult) -> ExecutionResult:
        result.state = DriverState.SUBMITTING
        path = result.path
        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would execute {result.symbols} borrow={path.borrow_amount} "
                        f"profit=${result.profit_usd:.2f}")
            return result

        try:
            await asyncio.wait_for(self._submit_lock.acquire(), timeout=self.config.submit_lock_timeout)
        except asyncio.TimeoutError:
            raise SubmissionError(SubmissionErrorKind.LOCK_TIMEOUT, "submission lock busy")
        try:
            result.tx_hash = await self.contract.execute_flash_arbitrage(path)
        finally:
            self._submit_lock.release()

        result.submitted = True
        logger.info(f"✅ {result.symbols} executed: {result.tx_hash} (est. ${result.profit_usd:.2f})")
        return result

    async def process(self, combo: TokenCombination) -> ExecutionResult:
        """
        One combination, one tick. Fetch and evaluation are bounded by
        task_timeout; submission has its own lock and receipt timeouts.
        """
        result = await asyncio.wait_for(self.evaluate(combo), timeout=self.config.task_timeout)
        if result.state is not DriverState.EVALUATING:
            return result

        try:
            return await self.submit(result)
        except SubmissionError as e:
            result.error = str(e)
            if e.is_expected:
                logger.info(f"{combo.symbols}: submission {e.kind.value}: {e}")
            else:
                logger.error(f"{combo.symbols}: unexpected submission error: {e}")
            return result

    async def run_tick(self, combos: List[TokenCombination]) -> List[ExecutionResult]:
        """Fan out over all combinations; a failing combination never stops the tick"""
        sem = asyncio.Semaphore(self.config.concurrency)

        async def guarded(combo):
            async with sem:
                return await self.process(combo)

        outcomes = await asyncio.gather(*(guarded(c) for c in combos), return_exceptions=True)

        results = []
        for combo, outcome in zip(combos, outcomes):
            if isinstance(outcome, asyncio.TimeoutError):
                logger.warning(f"{combo.symbols}: timed out after {self.config.task_timeout}s")
            elif isinstance(outcome, Exception):
                logger.error(f"{combo.symbols}: {type(outcome).__name__}: {outcome}")
            else:
                results.append(outcome)
        self.tick_count += 1
        return results

    async def run_forever(self, combos: List[TokenCombination]):
        self._running = True
        logger.info(f"Watching {len(combos)} combinations "
                    f"(concurrency={self.config.concurrency}, dry_run={self.config.dry_run})")
        while self._running:
            results = await self.run_tick(combos)
            submitted = sum(1 for r in results if r.submitted)
            candidates = sum(1 for r in results if r.state is DriverState.SUBMITTING)
            if candidates:
                logger.info(f"Tick {self.tick_count}: {candidates} profitable, {submitted} submitted")
            await asyncio.sleep(self.config.poll_interval)
