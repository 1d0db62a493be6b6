import givsim as SIM
from config import *
import argparse
import sys
import multiprocessing as mp

def main(delta,rho,reps,n_pop,n_replic,n_markers,seed,workers,on_error,outdir,summary):
	config = SIM.SimulationConfig(delta=delta, rho=rho, h2y=H2Y, h2T=H2T,
								  n_pop=n_pop, n_replic=n_replic, n_markers=n_markers,
								  reps=reps, rho_e=RHO_E, seed=seed, name=NAME,
								  on_error=on_error, n_workers=workers)
	# PART 0: CHECK CONFIGURATION BEFORE ANY SIMULATION WORK
	config.validate()

	print(f"\nno cores available: {mp.cpu_count()}")
	print(f"no cores used: {config.workers}")

	# PART 1: RUN ALL REPETITIONS, RESULTS ARE SAVED AFTER EACH ONE
	if config.workers > 1:
		with mp.Pool(config.workers) as pool:
			results, output = SIM.simulate(config, outdir, pool=pool, progress=True)
	else:
		results, output = SIM.simulate(config, outdir, progress=True)

	# PART 2: SUMMARIZE RESULTS
	if summary:
		print(SIM.write_summary(results, output))


def parse_args(argv=None):
	parser = argparse.ArgumentParser(description="Simulate markers and individuals in a GWAS setting and compare OLS, MR, GIV and EMR estimators of the effect of T on y in an independent replication sample. Additional parameters can be adjusted in the config.py file")
	parser.add_argument("delta",help="causal effect of T on y", type=float)
	parser.add_argument("rho",help="correlation between marker effects on y and T (pleiotropy)", type=float)
	parser.add_argument("--reps",help="# of repetitions", type=int, default=REPS)
	parser.add_argument("--n_pop",help="size of the GWAS population", type=int, default=N_POP)
	parser.add_argument("--n_replic",help="size of the replication sample", type=int, default=N_REPLIC)
	parser.add_argument("--n_markers",help="# of markers", type=int, default=N_MARKERS)
	parser.add_argument("--seed",help="master random seed", type=int, default=SEED)
	parser.add_argument("--workers",help="# of processes for the GWAS, defaults to available cores - 1", type=int, default=None)
	parser.add_argument("--on_error",help="stop the run or skip to the next repetition when a repetition fails", type=str,
		choices=["stop","skip"], default=ON_ERROR)
	parser.add_argument("--output_dir",help="location for output data to be written", type=str, default=OUTPUT_DIR)
	parser.add_argument("--summary",help="write a summary table and plot of the estimates after the run", action="store_true")
	args = parser.parse_args(argv)
	if args.output_dir[-1]!="/": args.output_dir+="/"
	return args


if __name__ == "__main__":
	args = parse_args()
	try:
		main(args.delta,args.rho,args.reps,args.n_pop,args.n_replic,args.n_markers,args.seed,
			 args.workers,args.on_error,args.output_dir,args.summary)
	except SIM.ConfigurationError as err:
		sys.exit(f"Error: {err}")
