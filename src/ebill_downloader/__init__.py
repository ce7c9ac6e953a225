"""ebill-downloader - fetch and unpack signed e-bill invoices."""
