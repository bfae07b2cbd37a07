"""
Branch-scoped inventory ledger and recipe-based stock deduction.

- recipes: RecipeResolver (variant override, base fallback)
- stock: StockLedger (atomic per-ingredient mutations + replay audit)
- sales: SaleDeductor (order completion -> SALE rows)
- refunds: RefundCompensator / OrderRefunds (refund -> REFUND rows)
- alerts: LowStockMonitor (OK / WARNING / CRITICAL)
"""
