"""Core domain package for telepaste.

Core contains fence scanning, codeblock parsing, qualification policy and
paste batch assembly without any Telegram, PasteMyst or storage-specific code,
keeping the business logic portable.
"""
