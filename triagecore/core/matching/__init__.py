"""Provider eligibility, online safety gate and ranking."""
