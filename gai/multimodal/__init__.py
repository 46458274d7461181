"""Input media preprocessing: mime detection, data URIs, image conversion, text extraction."""
