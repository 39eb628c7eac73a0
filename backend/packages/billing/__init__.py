"""
Billing package - subscription lifecycle and entitlements.

Keeps each company's entitlement in sync with Stripe:
- Commands (setup intent, subscribe, cancel) call Stripe synchronously
- Webhooks reconcile whatever Stripe reports afterwards
- Entitlements are derived from the company record on every read
"""
