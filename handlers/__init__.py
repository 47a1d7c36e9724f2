"""
handlers/ - Presentation Layer
================================
Telegram bot handlers, one module per area (cashflow, assets, budgets,
goals, reports, charts, assistant...). Each handler parses the command
arguments, delegates to a Service and sends the reply back to the user.
No business logic lives here.
"""
