"""Local rank estimation: neighborhood loading, adjacency, solving, write-back."""
